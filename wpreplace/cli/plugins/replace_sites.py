"""wpreplace Site Directory Module
Discovers the tenants of an installation and which one is the main site.
"""

from collections import namedtuple

from wpreplace.cli.plugins.replace_functions import RPFunctions
from wpreplace.core.domainvalidate import WPDomain
from wpreplace.core.errors import ExternalInterfaceError
from wpreplace.core.logging import Log


class Topology:
    """Installation topology, fixed for a run"""
    SINGLE = 'single'
    SUBDOMAIN = 'subdomain'
    SUBDIRECTORY = 'subdirectory'

    ALL = (SINGLE, SUBDOMAIN, SUBDIRECTORY)

    @staticmethod
    def is_multisite(topology):
        return topology in (Topology.SUBDOMAIN, Topology.SUBDIRECTORY)


Site = namedtuple('Site', ['id', 'domain', 'path'])


def make_site(blog_id, domain, path='/'):
    """Site with its path normalised to '/' or '/x/'"""
    return Site(int(blog_id), (domain or '').strip(),
                WPDomain.normalize_path(path))


def resolve_main_site(sites):
    """Main site id: lowest id with path '/', else lowest id, else 1"""
    root_ids = [site.id for site in sites if site.path == '/']
    if root_ids:
        return min(root_ids)
    if sites:
        return min(site.id for site in sites)
    return 1


class SiteDirectory:
    """Read the tenant list and topology through WP-CLI"""

    def __init__(self, ctx, wpcli, wp_root=None):
        self.ctx = ctx
        self.wpcli = wpcli
        self.wp_root = wp_root

    def _tenant_rows(self, reference_domain):
        try:
            return self.wpcli.list_tenants(reference_domain)
        except ExternalInterfaceError as e:
            Log.debug(self.ctx, f"wp site list unavailable: {e}")
            return None

    def _network_rows(self, reference_domain):
        try:
            return self.wpcli.count_network_rows(url=reference_domain)
        except ExternalInterfaceError as e:
            Log.debug(self.ctx, f"Network table count unavailable: {e}")
            return 0

    def detect_multisite(self, reference_domain, rows=None):
        """Return (is_multisite, detection_method)"""
        if rows is None:
            rows = self._tenant_rows(reference_domain)
        if (rows and len(rows) > 1) or self._network_rows(reference_domain) > 0:
            return True, 'database'
        if RPFunctions.wp_config_constant(self.wp_root, 'MULTISITE'):
            return True, 'wp-config'
        try:
            if self.wpcli.evaluate_boolean('is_multisite()',
                                           url=reference_domain):
                return True, 'wp-cli'
        except ExternalInterfaceError as e:
            Log.debug(self.ctx, f"is_multisite() check failed: {e}")
        return False, 'fallback'

    def detect_multisite_type(self, reference_domain):
        subdomain = RPFunctions.wp_config_constant(self.wp_root,
                                                   'SUBDOMAIN_INSTALL')
        if subdomain is None:
            subdomain = self.wpcli.evaluate_boolean('is_subdomain_install()',
                                                    url=reference_domain)
        return Topology.SUBDOMAIN if subdomain else Topology.SUBDIRECTORY

    def list_sites(self, reference_domain):
        """Return (topology, [Site]) for the installation.

        Raises ExternalInterfaceError when WordPress cannot be reached or a
        multisite tenant list cannot be read; both abort the run.
        """
        Log.debug(self.ctx, f"Checking WordPress installation for "
                  f"{reference_domain or 'default site'}")
        self.wpcli.ping(url=reference_domain)

        rows = self._tenant_rows(reference_domain)
        is_multisite, method = self.detect_multisite(reference_domain,
                                                     rows=rows)
        if not is_multisite:
            Log.debug(self.ctx, f"Single site detected ({method})")
            return Topology.SINGLE, [make_site(1, reference_domain, '/')]

        topology = self.detect_multisite_type(reference_domain)
        Log.debug(self.ctx, f"Multisite ({topology}) detected ({method})")
        if not rows:
            # A multisite whose tenants cannot be listed is fatal
            rows = self.wpcli.list_tenants(reference_domain)
        if not rows:
            raise ExternalInterfaceError(
                "wp site list returned no sites for a multisite installation")

        sites = {}
        for blog_id, domain, path in rows:
            sites[blog_id] = make_site(blog_id, domain, path)
        return topology, [sites[k] for k in sorted(sites)]
