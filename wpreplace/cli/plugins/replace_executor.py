"""wpreplace Rewrite Executor Module
Runs compiled plans through wp search-replace: routing tables first, then
every non-main site, then the main site.
"""

from wpreplace.cli.plugins.replace_sites import Topology
from wpreplace.core.errors import ExternalInterfaceError
from wpreplace.core.logging import Log


class TenantResult:
    """Outcome of one site's rewrite"""
    DONE = 'done'
    DRY_RUN = 'dry-run'
    SKIPPED = 'skipped'
    FAILED = 'failed'

    def __init__(self, site_id, phase, status, source=None, target=None,
                 steps=None, completed=0, changed=0, error=None):
        self.site_id = site_id
        self.phase = phase
        self.status = status
        self.source = source
        self.target = target
        self.steps = steps or []
        self.completed = completed
        self.changed = changed
        self.error = error

    def __repr__(self):
        return (f"TenantResult(site_id={self.site_id}, phase={self.phase!r}, "
                f"status={self.status!r}, changed={self.changed})")


class ExecutionReport:
    """Per-site results of a run, keyed by site id in execution order"""

    def __init__(self, dry_run=False):
        self.dry_run = dry_run
        self.results = {}
        self.routing = None
        self.steps = []

    def add(self, result):
        self.results[result.site_id] = result
        return result

    def failed_ids(self):
        return [site_id for site_id, result in self.results.items()
                if result.status == TenantResult.FAILED]

    def order(self):
        return list(self.results)

    @property
    def ok(self):
        return not self.failed_ids()

    @property
    def changed(self):
        return sum(result.changed for result in self.results.values())


class RewriteExecutor:
    """Apply rewrite plans sequentially, one site at a time"""

    PHASE_ROUTING = 'routing'
    PHASE_SUBSITES = 'subsites'
    PHASE_MAIN = 'main'

    def __init__(self, ctx, wpcli, all_tables=True, routing=None):
        self.ctx = ctx
        self.wpcli = wpcli
        self.all_tables = all_tables
        self.routing = routing

    def execute(self, plans, main_site_id, dry_run=False, mappings=None,
                topology=Topology.SINGLE, reference_domain=None):
        """Run [(steps, site_id)] plans and return an ExecutionReport"""
        report = ExecutionReport(dry_run=dry_run)
        by_id = {mapping.site_id: mapping for mapping in (mappings or [])}
        for steps, _ in plans:
            report.steps.extend(steps)
        multisite = Topology.is_multisite(topology)

        if multisite and self.routing is not None and by_id:
            report.routing = self.routing.update(
                list(by_id.values()), main_site_id, topology,
                reference_domain=reference_domain, dry_run=dry_run)

        main_steps = None
        if multisite:
            Log.info(self.ctx, f"\nSUB-SITES REPLACEMENT (ID != {main_site_id})")
        for steps, site_id in plans:
            if site_id == main_site_id:
                main_steps = steps
                continue
            self._run_site(report, self.PHASE_SUBSITES, site_id, steps,
                           by_id.get(site_id), dry_run, scoped=multisite,
                           network=False)

        if multisite:
            Log.info(self.ctx, f"\nMAIN SITE REPLACEMENT (ID = {main_site_id})")
        if main_steps is None:
            Log.warn(self.ctx, f"Could not find Main Site mapping "
                     f"(ID {main_site_id}) to process.")
        else:
            # Network-wide so references to the main domain in other sites
            # are rewritten after their own addresses
            self._run_site(report, self.PHASE_MAIN, main_site_id, main_steps,
                           by_id.get(main_site_id), dry_run, scoped=multisite,
                           network=multisite)
        return report

    @staticmethod
    def plan_addresses(steps):
        """(source, target) recovered from the plain steps of a plan.

        The last plain step searches for the address as it was entered,
        www included.
        """
        plain = [step for step in steps if not step.serialized]
        if not plain:
            return None, None
        return (plain[-1].search[2:].rstrip('/'),
                plain[-1].replace[2:].rstrip('/'))

    def _run_site(self, report, phase, site_id, steps, mapping, dry_run,
                  scoped, network):
        if mapping is not None:
            source = mapping.source_address()
            target = mapping.target_address()
        else:
            source, target = self.plan_addresses(steps)
        identity = (mapping.is_noop() if mapping else
                    all(step.search == step.replace for step in steps))
        if identity or not steps:
            Log.info(self.ctx, f"Skipping '{source or site_id}' "
                     f"(ID {site_id}, no change).")
            return report.add(TenantResult(site_id, phase,
                                           TenantResult.SKIPPED, source,
                                           target, steps))

        # The selector must stay the pre-rewrite address of this site
        url = source if scoped and source else None
        Log.info(self.ctx, f"\nReplacing for Site ID {site_id}: "
                 f"{source or steps[0].search} → {target or steps[0].replace}")
        changed = 0
        for number, step in enumerate(steps, start=1):
            kind = "Serialized" if step.serialized else "Standard"
            label = f"  Step {number}: {kind} {step.search} → {step.replace}"
            try:
                changed += self.wpcli.rewrite(
                    step.search, step.replace, url=url, network=network,
                    all_tables=self.all_tables, dry_run=dry_run,
                    log_name=f"replace_{site_id}")
            except ExternalInterfaceError as e:
                Log.failed(self.ctx, label)
                Log.error(self.ctx, f"Failed on {source or site_id} → "
                          f"{target or ''} (ID {site_id}, phase {phase}): {e}",
                          exit=False)
                return report.add(TenantResult(
                    site_id, phase, TenantResult.FAILED, source, target,
                    steps, completed=number - 1, changed=changed,
                    error=str(e)))
            Log.valide(self.ctx, label)

        status = TenantResult.DRY_RUN if dry_run else TenantResult.DONE
        Log.debug(self.ctx, f"Completed Site ID {site_id}: {changed} changes")
        return report.add(TenantResult(site_id, phase, status, source, target,
                                       steps, completed=len(steps),
                                       changed=changed))
