"""wpreplace WP-CLI adapter

The only way this tool touches the WordPress database. Every call accepts the
``url`` tenant selector that WP-CLI uses to pick the blog context.
"""

import csv
import io

from wpreplace.core.errors import ExternalInterfaceError
from wpreplace.core.logging import Log
from wpreplace.core.shellexec import WPShellExec, CommandExecutionError
from wpreplace.core.variables import WPVar


def php_literal(value):
    """Render a python value as a PHP literal for wp eval"""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, int):
        return str(value)
    text = str(value).replace('\\', '\\\\').replace("'", "\\'")
    return f"'{text}'"


def php_array(values):
    items = ', '.join(f"{php_literal(k)} => {php_literal(v)}"
                      for k, v in values.items())
    return f"array({items})"


class WPCli:
    """Site-administration interface backed by the wp binary"""

    ROUTING_TABLES = ('blogs', 'site')

    # Flags shared by every search-replace pass
    REWRITE_FLAGS = ['--skip-columns=guid', '--report-changed-only',
                     '--skip-plugins', '--skip-themes', '--skip-packages',
                     '--format=count']

    def __init__(self, ctx, wp_root=None, wp_bin='wp', allow_root=False,
                 timeout=600):
        self.ctx = ctx
        self.wp_root = wp_root
        self.wp_bin = wp_bin
        self.allow_root = allow_root
        self.timeout = timeout

    def _command(self, args, url=None):
        cmd = [self.wp_bin] + list(args)
        if url:
            cmd.append(f"--url={url}")
        if self.allow_root:
            cmd.append('--allow-root')
        return cmd

    def run(self, args, url=None, log_name=None):
        """Run a wp sub-command and return stdout.

        Raw WP-CLI error text is kept on the raised ExternalInterfaceError.
        """
        cmd = self._command(args, url=url)
        try:
            output = WPShellExec.cmd_exec(self.ctx, cmd, cwd=self.wp_root,
                                          timeout=self.timeout)
        except CommandExecutionError as e:
            if log_name:
                self.ctx.append_log(log_name, f"$ {' '.join(cmd)}\n"
                                    f"{e.stdout}{e.stderr}")
            raise ExternalInterfaceError(
                f"wp {' '.join(args[:2])} failed", command=cmd,
                returncode=e.returncode, stderr=e.stderr or str(e)) from e
        if log_name:
            self.ctx.append_log(log_name, f"$ {' '.join(cmd)}\n{output}")
        return output

    def eval(self, php, url=None, log_name=None):
        return self.run(['eval', php], url=url, log_name=log_name)

    def ping(self, url=None):
        """Fail with ExternalInterfaceError when WordPress is unreachable"""
        self.run(['core', 'is-installed'], url=url)
        return True

    def list_tenants(self, reference_domain=None):
        """Return [(blog_id, domain, path)] from wp site list"""
        output = self.run(['site', 'list', '--fields=blog_id,domain,path',
                           '--format=csv'], url=reference_domain)
        rows = []
        reader = csv.DictReader(io.StringIO(output.replace('\r', '')))
        for row in reader:
            blog_id = (row.get('blog_id') or '').strip()
            if not blog_id.isdigit():
                continue
            rows.append((int(blog_id), (row.get('domain') or '').strip(),
                         (row.get('path') or '').strip()))
        return rows

    def count_network_rows(self, url=None):
        php = ('global $wpdb; $wpdb->suppress_errors(); '
               'echo (int) $wpdb->get_var("SELECT COUNT(*) FROM {$wpdb->site}");')
        output = self.eval(php, url=url).strip()
        try:
            return int(output.splitlines()[-1]) if output else 0
        except ValueError:
            return 0

    def evaluate_boolean(self, expression, url=None):
        output = self.eval(f'echo ({expression}) ? "yes" : "no";', url=url)
        return output.strip() == 'yes'

    def rewrite(self, search, replace, url=None, network=False,
                all_tables=False, dry_run=False, log_name=None):
        """Literal search-replace, returns the number of changed values"""
        args = ['search-replace', search, replace] + self.REWRITE_FLAGS
        if all_tables:
            args.append('--all-tables')
        if network:
            args.append('--network')
        if dry_run:
            args.append('--dry-run')
        output = self.run(args, url=url, log_name=log_name).strip()
        try:
            return int(output.splitlines()[-1]) if output else 0
        except ValueError:
            Log.debug(self.ctx, f"Unexpected search-replace output: {output}")
            return 0

    def update_row(self, table, set_values, where_values, url=None):
        """$wpdb->update() on wp_blogs or wp_site, True on success"""
        if table not in self.ROUTING_TABLES:
            raise ValueError(f"Unsupported routing table: {table}")
        php = (f"global $wpdb; $result = $wpdb->update($wpdb->{table}, "
               f"{php_array(set_values)}, {php_array(where_values)}); "
               "echo ($result !== false ? 'SUCCESS' : 'FAILED');")
        output = self.eval(php, url=url)
        return 'SUCCESS' in output

    def table_prefix(self, url=None):
        try:
            prefix = self.run(['db', 'prefix'], url=url).strip()
        except ExternalInterfaceError as e:
            Log.debug(self.ctx, f"Could not read table prefix: {e}")
            return WPVar.wp_table_prefix
        return prefix or WPVar.wp_table_prefix

    def option_get(self, name, url=None):
        return self.run(['option', 'get', name], url=url).strip()

    def flush_cache(self, url=None):
        self.run(['cache', 'flush'], url=url)

    def flush_rewrite_rules(self, url=None):
        self.run(['rewrite', 'flush', '--hard'], url=url)

    def delete_all_transients(self, network=False, url=None):
        args = ['transient', 'delete', '--all']
        if network:
            args.append('--network')
        self.run(args, url=url)

    def db_import(self, sql_file):
        self.run(['db', 'import', sql_file], log_name='db_import')

    def site_urls(self, url=None):
        output = self.run(['site', 'list', '--field=url'], url=url)
        return [line.strip() for line in output.splitlines() if line.strip()]

    def revision_ids(self, url=None):
        output = self.run(['post', 'list', '--post_type=revision',
                           '--format=ids'], url=url)
        return [i for i in output.split() if i.isdigit()]

    def delete_posts(self, ids, url=None):
        if not ids:
            return
        self.run(['post', 'delete'] + list(ids) + ['--force'], url=url)
