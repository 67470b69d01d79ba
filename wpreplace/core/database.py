"""wpreplace generic database creation module"""

import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, scoped_session, sessionmaker

from wpreplace.core.variables import WPVar

db_session = scoped_session(sessionmaker(autocommit=False, autoflush=False))
Base = declarative_base()
Base.query = db_session.query_property()


def init_db(app=None, uri=None):
    """
        Initializes and creates all tables from models into the database
    """
    uri = uri or WPVar.wp_db_uri
    if uri.startswith('sqlite:///'):
        db_dir = os.path.dirname(uri[len('sqlite:///'):])
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)
    engine = create_engine(uri)
    db_session.remove()
    db_session.configure(bind=engine)
    # import all modules here that might define models so that
    # they will be registered properly on the metadata.
    import wpreplace.cli.plugins.replace_db  # noqa: F401
    Base.metadata.create_all(bind=engine)
    return engine
