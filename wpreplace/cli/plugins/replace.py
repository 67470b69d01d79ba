"""wpreplace Replace Plugin
Imports a production database into a local WordPress install and rewrites
every site address, for single sites and multisite networks alike.
"""

import os
from types import SimpleNamespace

from cement import Controller, ex

from wpreplace.cli.plugins.replace_db import RPDatabase
from wpreplace.cli.plugins.replace_executor import RewriteExecutor, TenantResult
from wpreplace.cli.plugins.replace_functions import RPFunctions
from wpreplace.cli.plugins.replace_mappings import MappingBuilder
from wpreplace.cli.plugins.replace_plan import compile_plans
from wpreplace.cli.plugins.replace_routing import RoutingTableUpdater
from wpreplace.cli.plugins.replace_sites import (SiteDirectory, Topology,
                                                 resolve_main_site)
from wpreplace.core.domainvalidate import WPDomain
from wpreplace.core.errors import MigrationError, ValidationError
from wpreplace.core.logging import Log
from wpreplace.core.runcontext import RunContext
from wpreplace.core.variables import WPVar
from wpreplace.core.wpcli import WPCli


def wp_replace_hook(app):
    """Hook to initialize the run history database"""
    from wpreplace.core.database import init_db
    try:
        init_db(app)
    except Exception as e:
        Log.debug(SimpleNamespace(app=app),
                  f"Run history unavailable: {e}")


def ask(message, default=None):
    """Prompt the operator, returning default on an empty answer"""
    suffix = f" [{default}]" if default else ""
    try:
        answer = input(f"{message}{suffix}: ").strip()
    except EOFError:
        return default
    return answer or default


def confirm(message, default=True):
    hint = "(Y/n)" if default else "(y/N)"
    try:
        answer = input(f"{message} {hint}: ").strip().lower()
    except EOFError:
        return default
    if not answer:
        return default
    return answer in ('y', 'yes')


# Arguments shared by every command that talks to WordPress
SITE_ARGUMENTS = [
    (['--path'],
        dict(help='WordPress root (default: search upward from cwd)',
             dest='path')),
    (['--old'],
        dict(help='Production domain to search for', dest='old')),
    (['--new'],
        dict(help='Local domain to replace it with', dest='new')),
    (['-y', '--yes'],
        dict(help='Accept defaults without prompting', action='store_true')),
]


class WPReplaceController(Controller):
    """wpreplace base controller"""

    class Meta:
        label = 'base'
        description = ('Import a WordPress database and replace production '
                       'domains with local ones')
        arguments = [
            (['-v', '--version'],
                dict(action='version',
                     version=f"wpreplace {WPVar.wp_version}")),
        ]
        usage = "wpreplace <command> [options]"

    def _default(self):
        """Default command"""
        self.app.args.print_help()

    def _load(self, pargs):
        """Return (wp_root, config_file, config) for the current install"""
        wp_root = RPFunctions.find_wp_root(pargs.path)
        if not wp_root:
            Log.error(self, "Could not find wp-config.php in "
                      f"{os.path.abspath(pargs.path or os.getcwd())} "
                      "or any parent directory")
        config_file = RPFunctions.config_path(wp_root)
        config = RPFunctions.load_config(self, config_file)
        Log.debug(self, f"WordPress root: {wp_root}")
        return wp_root, config_file, config

    def _wpcli(self, ctx, wp_root, config):
        return WPCli(ctx, wp_root, wp_bin=config['wp_bin'],
                     allow_root=config['allow_root'],
                     timeout=config['timeout'])

    def _domain(self, pargs, value, message, default=None):
        """Sanitized and validated domain, prompting when none is set"""
        raw = value
        if not raw:
            raw = default if pargs.yes else ask(message, default)
        raw = raw or ''
        cleaned = WPDomain.sanitize(raw)
        if cleaned != raw.strip():
            Log.info(self, f"Cleaned: '{raw}' → '{cleaned}'")
        try:
            return WPDomain.validate(cleaned)
        except ValidationError as e:
            Log.error(self, str(e))

    def _resolve_mismatch(self, pargs, configured, detected, config_file):
        """Pick the old domain when the config and the database disagree"""
        Log.warn(self, "Domain mismatch detected!")
        Log.info(self, f"  Config file domain: {configured}", log=False)
        Log.info(self, f"  Database domain:    {detected}", log=False)
        if pargs.yes:
            Log.warn(self, f"Using the database domain: {detected}")
            return detected
        Log.info(self, f"  1) Update config file with the database domain "
                 f"({detected})\n  2) Keep the config domain ({configured})"
                 "\n  3) Cancel", log=False)
        choice = ask("Enter your choice (1-3)", '1')
        if choice == '1':
            if config_file:
                RPFunctions.update_general(self, config_file, 'old_domain',
                                           detected)
            return detected
        if choice == '2':
            return configured
        Log.error(self, "Cancelled: the config file domain does not match "
                  "the database")

    def _old_domain(self, pargs, config, wpcli=None, config_file=None):
        configured = pargs.old or config['old_domain']
        detected = None
        if not pargs.old and wpcli is not None:
            detected = RPFunctions.detect_database_domain(self, wpcli)
        if (configured and detected and
                RPFunctions.domains_differ(configured, detected)):
            configured = self._resolve_mismatch(pargs, configured, detected,
                                                config_file)
        return self._domain(pargs, configured,
                            "Enter the OLD (production) domain to search for",
                            detected)

    def _new_domain(self, pargs, config):
        return self._domain(pargs, pargs.new or config['new_domain'],
                            "Enter the NEW (local) domain to replace with")

    def _sites(self, directory, reference_domain):
        try:
            topology, sites = directory.list_sites(reference_domain)
        except MigrationError as e:
            Log.error(self, f"Could not read the site directory: {e}")
        main_site_id = resolve_main_site(sites)
        if Topology.is_multisite(topology):
            Log.info(self, f"Multisite ({topology}) with {len(sites)} "
                     f"sites, main site ID {main_site_id}")
        else:
            Log.info(self, "Single site installation")
        return topology, sites, main_site_id

    def _mappings(self, ctx, pargs, config, sites, topology, old, new):
        builder = MappingBuilder(ctx, prompt=None if pargs.yes else ask,
                                 persisted=config['site_mappings'])
        try:
            mappings = builder.build(sites, topology, new, source_domain=old)
        except MigrationError as e:
            Log.error(self, str(e))
        if not mappings:
            Log.error(self, "No valid domain mappings to process")
        Log.info(self, "\nDOMAIN MAPPING SUMMARY")
        for line in MappingBuilder.summary(mappings):
            Log.info(self, f"  {line}", log=False)
        return mappings

    def _report(self, report, mappings):
        Log.info(self, "\nSEARCH-REPLACE SUMMARY")
        by_id = {mapping.site_id: mapping for mapping in mappings}
        for site_id in report.order():
            result = report.results[site_id]
            mapping = by_id.get(site_id)
            pair = (f"{mapping.source_address()} → {mapping.target_address()}"
                    if mapping else '')
            line = (f"  [ID: {site_id}] {pair} ({result.phase}) "
                    f"{result.completed}/{len(result.steps)} steps, "
                    f"{result.changed} changes")
            if result.status == TenantResult.FAILED:
                Log.failed(self, line)
            elif result.status == TenantResult.SKIPPED:
                Log.info(self, f"  [ID: {site_id}] skipped (no change)")
            else:
                Log.valide(self, line)

        routing = report.routing
        if routing is not None and not routing.applied and routing.statements:
            title = ("Routing tables (dry run), would run:" if report.dry_run
                     else "Routing tables were NOT updated, run manually:")
            Log.warn(self, title)
            for statement in routing.statements:
                Log.info(self, f"  {statement}", log=False)
        if report.dry_run:
            Log.info(self, f"\nDry run: {report.changed} values would change")
        else:
            Log.info(self, f"\nTotal changed values: {report.changed}")

    @ex(help='Import the database and replace domains for every site',
        arguments=SITE_ARGUMENTS + [
            (['--import'],
                dict(help='Run wp db import before replacing',
                     action='store_true', dest='db_import')),
            (['--sql-file'],
                dict(help='SQL dump to import (implies --import)',
                     dest='sql_file')),
            (['--dry-run'],
                dict(help='Report changes without writing them',
                     action='store_true', dest='dry_run')),
            (['--no-all-tables'],
                dict(help='Only search tables registered with WordPress',
                     action='store_true', dest='no_all_tables')),
            (['--clean-revisions'],
                dict(help='Delete post revisions before replacing',
                     action='store_true', dest='clean_revisions')),
            (['--keep-revisions'],
                dict(help='Do not delete post revisions',
                     action='store_true', dest='keep_revisions')),
            (['--save'],
                dict(help='Save domains and site mappings to the config file',
                     action='store_true')),
        ])
    def replace(self):
        pargs = self.app.pargs
        wp_root, config_file, config = self._load(pargs)
        dry_run = pargs.dry_run or config['dry_run']
        all_tables = config['all_tables'] and not pargs.no_all_tables
        clean_revisions = ((pargs.clean_revisions or config['clear_revisions'])
                           and not pargs.keep_revisions and not dry_run)
        auto_proceed = pargs.yes or config['auto_proceed']

        with RunContext(self.app) as ctx:
            wpcli = self._wpcli(ctx, wp_root, config)

            if pargs.db_import or pargs.sql_file:
                sql_file = pargs.sql_file or config['sql_file']
                if not os.path.isabs(sql_file):
                    sql_file = os.path.join(wp_root, sql_file)
                if not os.path.isfile(sql_file):
                    Log.error(self, f"SQL file not found: {sql_file}")
                Log.wait(self, f"Importing {os.path.basename(sql_file)}")
                try:
                    wpcli.db_import(sql_file)
                except MigrationError as e:
                    Log.failed(self, f"Importing {os.path.basename(sql_file)}")
                    Log.error(self, f"Database import failed: {e}")
                Log.valide(self, f"Importing {os.path.basename(sql_file)}")

            old = self._old_domain(pargs, config, wpcli, config_file)
            new = self._new_domain(pargs, config)
            topology, sites, main_site_id = self._sites(
                SiteDirectory(ctx, wpcli, wp_root), old)
            multisite = Topology.is_multisite(topology)

            if clean_revisions:
                Log.info(self, "Cleaning post revisions...")
                urls = None
                if multisite:
                    try:
                        urls = wpcli.site_urls(url=old)
                    except MigrationError as e:
                        Log.warn(self, f"Could not list site URLs: {e}")
                RPFunctions.clean_revisions(self, wpcli, urls)

            mappings = self._mappings(ctx, pargs, config, sites, topology,
                                      old, new)
            if dry_run:
                Log.warn(self, "DRY RUN: no changes will be written")
            if not auto_proceed and not confirm(
                    "\nProceed with search-replace for all sites?"):
                Log.info(self, "Operation cancelled.")
                return

            if pargs.save:
                RPFunctions.update_general(self, config_file, 'old_domain', old)
                RPFunctions.update_general(self, config_file, 'new_domain', new)
                if multisite:
                    RPFunctions.save_site_mappings(self, config_file, mappings)

            plans = compile_plans(mappings, main_site_id)
            executor = RewriteExecutor(ctx, wpcli, all_tables=all_tables,
                                       routing=RoutingTableUpdater(ctx, wpcli))
            report = executor.execute(plans, main_site_id, dry_run=dry_run,
                                      mappings=mappings, topology=topology,
                                      reference_domain=old)

            if not dry_run:
                Log.info(self, "\nCleaning up caches...")
                main = [m for m in mappings if m.site_id == main_site_id]
                url = main[0].target_address() if multisite and main else None
                RPFunctions.flush_caches(self, wpcli, network=multisite,
                                         url=url)

            self._report(report, mappings)
            RPDatabase.record_run(self, report, old, topology, main_site_id,
                                  wp_root=wp_root)

        failed = report.failed_ids()
        if failed:
            Log.error(self, "Search-replace failed for Blog IDs: "
                      f"{', '.join(map(str, failed))}")
        Log.info(self, "Domain replacement completed successfully")

    @ex(help='Show the topology, sites and main site of an install',
        arguments=SITE_ARGUMENTS)
    def sites(self):
        pargs = self.app.pargs
        wp_root, config_file, config = self._load(pargs)
        with RunContext(self.app) as ctx:
            wpcli = self._wpcli(ctx, wp_root, config)
            old = self._old_domain(pargs, config, wpcli, config_file)
            topology, sites, main_site_id = self._sites(
                SiteDirectory(ctx, wpcli, wp_root), old)
        for site in sites:
            marker = ' (main)' if site.id == main_site_id else ''
            Log.info(self, f"  [ID: {site.id}] {site.domain}{site.path}{marker}",
                     log=False)

    @ex(help='Show the search-replace passes without running them',
        arguments=SITE_ARGUMENTS)
    def plan(self):
        pargs = self.app.pargs
        wp_root, config_file, config = self._load(pargs)
        with RunContext(self.app) as ctx:
            wpcli = self._wpcli(ctx, wp_root, config)
            old = self._old_domain(pargs, config, wpcli, config_file)
            new = self._new_domain(pargs, config)
            topology, sites, main_site_id = self._sites(
                SiteDirectory(ctx, wpcli, wp_root), old)
            mappings = self._mappings(ctx, pargs, config, sites, topology,
                                      old, new)
            routing = None
            if Topology.is_multisite(topology):
                updater = RoutingTableUpdater(ctx, wpcli)
                try:
                    routing = updater.statements(
                        updater.derive(mappings, main_site_id, topology),
                        wpcli.table_prefix(url=old))
                except MigrationError as e:
                    Log.warn(self, str(e))

        Log.info(self, "\nREWRITE PLAN")
        for steps, site_id in compile_plans(mappings, main_site_id):
            main = ' (main, last)' if site_id == main_site_id else ''
            Log.info(self, f"  Site ID {site_id}{main}", log=False)
            for number, step in enumerate(steps, start=1):
                kind = "serialized" if step.serialized else "plain"
                Log.info(self, f"    {number}. [{kind}] {step.search} → "
                         f"{step.replace}", log=False)
        if routing:
            Log.info(self, "\nROUTING TABLE UPDATES (run first)")
            for statement in routing:
                Log.info(self, f"  {statement}", log=False)

    @ex(help='Show local links for every site after a migration',
        arguments=SITE_ARGUMENTS + [
            (['--check'],
                dict(help='Check that each site answers over HTTP',
                     action='store_true')),
            (['--scheme'],
                dict(help='URL scheme of the local sites', default='https')),
        ])
    def links(self):
        pargs = self.app.pargs
        wp_root, _, config = self._load(pargs)
        with RunContext(self.app) as ctx:
            wpcli = self._wpcli(ctx, wp_root, config)
            new = self._new_domain(pargs, config)
            _, sites, _ = self._sites(SiteDirectory(ctx, wpcli, wp_root), new)

        Log.info(self, "\nLOCAL SITE LINKS")
        for site_id, url, admin_url in RPFunctions.site_links(
                sites, scheme=pargs.scheme):
            line = f"  [ID: {site_id}] {url}  admin: {admin_url}"
            if not pargs.check:
                Log.info(self, line, log=False)
            elif RPFunctions.test_site(self, url):
                Log.valide(self, line)
            else:
                Log.failed(self, line)

    @ex(help='Delete post revisions for every site',
        arguments=SITE_ARGUMENTS)
    def revisions(self):
        pargs = self.app.pargs
        wp_root, config_file, config = self._load(pargs)
        with RunContext(self.app) as ctx:
            wpcli = self._wpcli(ctx, wp_root, config)
            domain = self._old_domain(pargs, config, wpcli, config_file)
            topology, _, _ = self._sites(SiteDirectory(ctx, wpcli, wp_root),
                                         domain)
            urls = None
            if Topology.is_multisite(topology):
                try:
                    urls = wpcli.site_urls(url=domain)
                except MigrationError as e:
                    Log.error(self, f"Could not list site URLs: {e}")
            deleted = RPFunctions.clean_revisions(self, wpcli, urls)
        Log.info(self, f"Deleted {sum(deleted.values())} revisions")

    @ex(help='Show previous replace runs',
        arguments=[
            (['--limit'],
                dict(help='Number of runs to show', type=int, default=10)),
            (['--run'],
                dict(help='Show the failed sites of one run', type=int,
                     dest='run_id')),
        ])
    def history(self):
        pargs = self.app.pargs
        if pargs.run_id:
            run = RPDatabase.get_run(self, pargs.run_id)
            if run is None:
                Log.error(self, f"Run {pargs.run_id} not found")
            Log.info(self, f"Run {run.id}: {run.reference_domain} "
                     f"({run.topology}) {run.status}", log=False)
            for site in RPDatabase.get_failed_sites(self, run.id):
                Log.info(self, f"  [ID: {site.site_id}] {site.source} → "
                         f"{site.target} ({site.phase}): {site.error}",
                         log=False)
            if run.routing_statements and not run.routing_applied:
                Log.info(self, "Routing statements:", log=False)
                for statement in run.routing_statements.splitlines():
                    Log.info(self, f"  {statement}", log=False)
            return

        runs = RPDatabase.get_runs(self, limit=pargs.limit)
        if not runs:
            Log.info(self, "No runs recorded", log=False)
            return
        for run in runs:
            flags = ' dry-run' if run.dry_run else ''
            Log.info(self, f"  {run.id:>4}  {run.created_at:%Y-%m-%d %H:%M}  "
                     f"{run.reference_domain} ({run.topology}) "
                     f"{run.status}{flags}", log=False)
