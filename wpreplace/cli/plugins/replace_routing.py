"""wpreplace Routing Table Module
Keeps wp_blogs and wp_site in line with the confirmed domain mappings.
"""

from collections import namedtuple

from wpreplace.cli.plugins.replace_sites import Topology
from wpreplace.core.domainvalidate import WPDomain
from wpreplace.core.errors import ExternalInterfaceError, RoutingUpdateError
from wpreplace.core.logging import Log


class RoutingTable:
    BLOGS = 'blogs'
    SITE = 'site'


# wp_site row describing the network
NETWORK_ID = 1

RoutingUpdate = namedtuple('RoutingUpdate',
                           ['table', 'site_id', 'domain', 'path'])


class RoutingResult:
    """applied is False whenever any row needs the manual statements"""

    def __init__(self, applied, statements=None, updates=None, reason=None):
        self.applied = applied
        self.statements = statements or []
        self.updates = updates or []
        self.reason = reason

    def __repr__(self):
        return (f"RoutingResult(applied={self.applied}, "
                f"rows={len(self.updates)}, reason={self.reason!r})")


def sql_string(value):
    return "'" + str(value).replace('\\', '\\\\').replace("'", "''") + "'"


class RoutingTableUpdater:
    """Update wp_blogs / wp_site, falling back to manual statements"""

    def __init__(self, ctx, wpcli, table_prefix=None):
        self.ctx = ctx
        self.wpcli = wpcli
        self.table_prefix = table_prefix

    @staticmethod
    def base_domain(mappings, main_site_id):
        """Host of the main site's target, without any path"""
        for mapping in mappings:
            if mapping.site_id == main_site_id:
                host, _ = WPDomain.split_host_path(
                    WPDomain.sanitize(mapping.target_domain))
                return host or None
        return None

    def derive(self, mappings, main_site_id, topology):
        """RoutingUpdates: network row, non-main sites, then the main site"""
        base = self.base_domain(mappings, main_site_id)
        if not base:
            raise RoutingUpdateError(
                f"Could not determine base domain from main site "
                f"(ID {main_site_id}) mapping")

        def row(mapping, is_main):
            if topology == Topology.SUBDIRECTORY:
                path = '/' if is_main else WPDomain.normalize_path(
                    mapping.target_path)
                return RoutingUpdate(RoutingTable.BLOGS, mapping.site_id,
                                     base, path)
            host, _ = WPDomain.split_host_path(mapping.target_domain)
            return RoutingUpdate(RoutingTable.BLOGS, mapping.site_id,
                                 host or base, '/')

        updates = [RoutingUpdate(RoutingTable.SITE, None, base, None)]
        main = None
        for mapping in mappings:
            if mapping.site_id == main_site_id:
                main = mapping
                continue
            # Unchanged sites keep their wp_blogs row
            if mapping.is_noop():
                continue
            updates.append(row(mapping, False))
        if main is not None and not main.is_noop():
            updates.append(row(main, True))
        return updates

    def statements(self, updates, prefix='wp_'):
        """Equivalent UPDATE statements for manual execution"""
        lines = []
        for update in updates:
            if update.table == RoutingTable.SITE:
                lines.append(f"UPDATE {prefix}site SET domain = "
                             f"{sql_string(update.domain)} "
                             f"WHERE id = {NETWORK_ID};")
            else:
                lines.append(f"UPDATE {prefix}blogs SET domain = "
                             f"{sql_string(update.domain)}, path = "
                             f"{sql_string(update.path)} "
                             f"WHERE blog_id = {int(update.site_id)};")
        return lines

    def _apply(self, update, reference_domain):
        if update.table == RoutingTable.SITE:
            return self.wpcli.update_row(RoutingTable.SITE,
                                         {'domain': update.domain},
                                         {'id': NETWORK_ID},
                                         url=reference_domain)
        return self.wpcli.update_row(RoutingTable.BLOGS,
                                     {'domain': update.domain,
                                      'path': update.path},
                                     {'blog_id': int(update.site_id)},
                                     url=reference_domain)

    def update(self, mappings, main_site_id, topology, reference_domain=None,
               dry_run=False):
        """Return a RoutingResult; never raises for update failures"""
        try:
            updates = self.derive(mappings, main_site_id, topology)
        except RoutingUpdateError as e:
            Log.warn(self.ctx, f"{e} - skipping automatic table updates")
            return RoutingResult(False, reason=str(e))

        prefix = self.table_prefix or self.wpcli.table_prefix(
            url=reference_domain)
        statements = self.statements(updates, prefix)
        if dry_run:
            return RoutingResult(False, statements, updates, "dry run")

        Log.info(self.ctx, f"Updating {prefix}blogs and {prefix}site tables "
                 "(before search-replace)...")
        try:
            self.wpcli.ping(url=reference_domain)
        except ExternalInterfaceError as e:
            Log.warn(self.ctx, f"Connection failed: {e}")
            return RoutingResult(False, statements, updates, str(e))

        failures = []
        for update in updates:
            label = (f"Network site ID {NETWORK_ID}: domain → {update.domain}"
                     if update.table == RoutingTable.SITE else
                     f"Blog ID {update.site_id}: → "
                     f"{update.domain}{update.path}")
            try:
                ok = self._apply(update, reference_domain)
                error = None if ok else "update returned FAILED"
            except ExternalInterfaceError as e:
                ok, error = False, str(e)
            if ok:
                Log.valide(self.ctx, f"  {label}")
            else:
                Log.failed(self.ctx, f"  {label}")
                failures.append(f"{label}: {error}")

        if failures:
            reason = str(RoutingUpdateError("; ".join(failures)))
            Log.warn(self.ctx, f"{prefix}blogs / {prefix}site update failed, "
                     "run these statements manually:")
            for statement in statements:
                Log.info(self.ctx, f"  {statement}", log=False)
            return RoutingResult(False, statements, updates, reason)
        Log.info(self.ctx, f"Tables {prefix}blogs & {prefix}site updated")
        return RoutingResult(True, statements, updates)
