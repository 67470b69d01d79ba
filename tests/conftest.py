from unittest.mock import Mock

import pytest

from wpreplace.core.errors import ExternalInterfaceError
from wpreplace.core.runcontext import RunContext


class FakeApp:
    """Stand-in for the cement app: a mock logger and a recording close()"""

    def __init__(self):
        self.log = Mock()
        self.exit_code = None

    def close(self, code=None):
        self.exit_code = code
        raise SystemExit(code)


class FakeWPCli:
    """In-memory WP-CLI port recording every call in order"""

    def __init__(self, tenants=None, network_rows=0, booleans=None,
                 changes=1, prefix='wp_'):
        self.tenants = tenants
        self.network_rows = network_rows
        self.booleans = booleans or {}
        self.changes = changes
        self.prefix = prefix
        self.events = []
        self.ping_error = False
        self.list_error = False
        self.fail_urls = set()
        self.fail_rows = set()
        self.fail_flush = set()
        self.revisions = {}

    def _error(self, what):
        return ExternalInterfaceError(f"wp {what} failed", command=['wp'],
                                      returncode=1, stderr='Error: boom')

    def rewrites(self):
        return [e[1] for e in self.events if e[0] == 'rewrite']

    def row_updates(self):
        return [e[1] for e in self.events if e[0] == 'update_row']

    def ping(self, url=None):
        self.events.append(('ping', url))
        if self.ping_error:
            raise self._error('core is-installed')
        return True

    def list_tenants(self, reference_domain=None):
        self.events.append(('list_tenants', reference_domain))
        if self.list_error or self.tenants is None:
            raise self._error('site list')
        return list(self.tenants)

    def count_network_rows(self, url=None):
        return self.network_rows

    def evaluate_boolean(self, expression, url=None):
        return self.booleans.get(expression, False)

    def rewrite(self, search, replace, url=None, network=False,
                all_tables=False, dry_run=False, log_name=None):
        call = dict(search=search, replace=replace, url=url, network=network,
                    all_tables=all_tables, dry_run=dry_run)
        self.events.append(('rewrite', call))
        if url in self.fail_urls:
            raise self._error('search-replace')
        return self.changes

    def update_row(self, table, set_values, where_values, url=None):
        self.events.append(('update_row', (table, dict(set_values),
                                           dict(where_values))))
        key = where_values.get('blog_id', 'site')
        return key not in self.fail_rows

    def table_prefix(self, url=None):
        return self.prefix

    def option_get(self, name, url=None):
        return 'https://www.example.com'

    def flush_cache(self, url=None):
        self._flush('cache', url)

    def flush_rewrite_rules(self, url=None):
        self._flush('rewrite', url)

    def delete_all_transients(self, network=False, url=None):
        self._flush('transient', url)

    def _flush(self, what, url):
        self.events.append(('flush', what, url))
        if what in self.fail_flush:
            raise self._error(what)

    def site_urls(self, url=None):
        return [u for u in self.revisions if u]

    def revision_ids(self, url=None):
        return list(self.revisions.get(url, []))

    def delete_posts(self, ids, url=None):
        self.events.append(('delete_posts', list(ids), url))


@pytest.fixture
def app():
    return FakeApp()


@pytest.fixture
def ctx(app, tmp_path):
    with RunContext(app, scratch_root=str(tmp_path)) as context:
        yield context


@pytest.fixture
def wpcli():
    return FakeWPCli()
