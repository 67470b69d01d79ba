"""wpreplace Run History Module
Records each domain replacement run and the outcome for every site.
"""

from datetime import datetime

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Integer,
                        String, Text)
from sqlalchemy.orm import relationship

from wpreplace.core.database import Base, db_session
from wpreplace.core.logging import Log


class ReplaceRun(Base):
    """One invocation of the replace command"""
    __tablename__ = 'replace_runs'

    id = Column(Integer, primary_key=True)
    wp_root = Column(String(1024))
    reference_domain = Column(String(255), nullable=False)
    topology = Column(String(20))
    main_site_id = Column(Integer, default=1)
    dry_run = Column(Boolean, default=False)
    routing_applied = Column(Boolean, default=False)
    routing_statements = Column(Text)
    status = Column(String(20), default='running')
    created_at = Column(DateTime, default=datetime.now)
    finished_at = Column(DateTime)

    sites = relationship('ReplaceSiteResult', back_populates='run',
                         cascade='all, delete-orphan',
                         order_by='ReplaceSiteResult.id')


class ReplaceSiteResult(Base):
    """Rewrite outcome of one site within a run"""
    __tablename__ = 'replace_site_results'

    id = Column(Integer, primary_key=True)
    run_id = Column(Integer, ForeignKey('replace_runs.id'), nullable=False)
    site_id = Column(Integer, nullable=False)
    phase = Column(String(20))
    status = Column(String(20))
    source = Column(String(1024))
    target = Column(String(1024))
    steps_completed = Column(Integer, default=0)
    steps_total = Column(Integer, default=0)
    changed = Column(Integer, default=0)
    error = Column(Text)

    run = relationship('ReplaceRun', back_populates='sites')


class RPDatabase:
    """Run history operations"""

    @staticmethod
    def record_run(app, report, reference_domain, topology, main_site_id,
                   wp_root=None):
        """Store an ExecutionReport, returns the run id or None"""
        session = db_session
        try:
            run = ReplaceRun(
                wp_root=wp_root,
                reference_domain=reference_domain,
                topology=topology,
                main_site_id=main_site_id,
                dry_run=report.dry_run,
                status='completed' if report.ok else 'failed',
                finished_at=datetime.now())
            if report.routing is not None:
                run.routing_applied = report.routing.applied
                run.routing_statements = '\n'.join(report.routing.statements)
            for result in report.results.values():
                run.sites.append(ReplaceSiteResult(
                    site_id=result.site_id,
                    phase=result.phase,
                    status=result.status,
                    source=result.source,
                    target=result.target,
                    steps_completed=result.completed,
                    steps_total=len(result.steps),
                    changed=result.changed,
                    error=result.error))
            session.add(run)
            session.commit()
            Log.debug(app, f"Recorded run {run.id} for {reference_domain}")
            return run.id
        except Exception as e:
            session.rollback()
            Log.debug(app, f"Failed to record run: {e}")
            return None

    @staticmethod
    def get_runs(app, limit=10):
        try:
            return (db_session.query(ReplaceRun)
                    .order_by(ReplaceRun.id.desc()).limit(limit).all())
        except Exception as e:
            Log.debug(app, f"Failed to read run history: {e}")
            return []

    @staticmethod
    def get_run(app, run_id):
        try:
            return db_session.query(ReplaceRun).filter_by(id=run_id).first()
        except Exception as e:
            Log.debug(app, f"Failed to read run {run_id}: {e}")
            return None

    @staticmethod
    def get_failed_sites(app, run_id):
        try:
            return (db_session.query(ReplaceSiteResult)
                    .filter_by(run_id=run_id, status='failed')
                    .order_by(ReplaceSiteResult.site_id).all())
        except Exception as e:
            Log.debug(app, f"Failed to read failed sites for run {run_id}: {e}")
            return []
