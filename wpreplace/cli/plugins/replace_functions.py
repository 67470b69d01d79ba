"""wpreplace Functions Module
Configuration file handling and helpers shared by the replace commands.
"""

import configparser
import os
import re

import requests

from wpreplace.core.domainvalidate import WPDomain
from wpreplace.core.errors import ExternalInterfaceError
from wpreplace.core.logging import Log
from wpreplace.core.variables import WPVar


class RPFunctions:
    """Domain replacement utility functions"""

    @staticmethod
    def find_wp_root(start=None):
        """Walk up from start until a directory holding wp-config.php"""
        current = os.path.abspath(start or os.getcwd())
        while True:
            if os.path.isfile(os.path.join(current, 'wp-config.php')):
                return current
            parent = os.path.dirname(current)
            if parent == current:
                return None
            current = parent

    @staticmethod
    def config_path(wp_root):
        return os.path.join(wp_root, WPVar.wp_config_file_name)

    @staticmethod
    def wp_config_constant(wp_root, name):
        """Return True/False for define('NAME', true|false), None if absent"""
        wp_config = os.path.join(wp_root or '', 'wp-config.php')
        if not os.path.isfile(wp_config):
            return None
        pattern = re.compile(
            r"""define\s*\(\s*['"]%s['"]\s*,\s*(true|false|1|0)\s*\)"""
            % re.escape(name), re.IGNORECASE)
        with open(wp_config, 'r', errors='replace') as f:
            for line in f:
                if line.lstrip().startswith(('//', '#', '*')):
                    continue
                match = pattern.search(line)
                if match:
                    return match.group(1).lower() in ('true', '1')
        return None

    @staticmethod
    def read_config(config_file):
        config = configparser.ConfigParser(interpolation=None)
        if os.path.exists(config_file):
            config.read(config_file)
        if not config.has_section('general'):
            config.add_section('general')
        for key, value in WPVar.wp_config_defaults.items():
            if not config.has_option('general', key):
                config.set('general', key, value)
        if not config.has_section('site_mappings'):
            config.add_section('site_mappings')
        return config

    @staticmethod
    def load_config(app, config_file):
        """Load wpdb-import.conf merged with defaults"""
        config = RPFunctions.read_config(config_file)
        result = dict(config.items('general'))
        for key in ('all_tables', 'dry_run', 'allow_root', 'clear_revisions',
                    'auto_proceed'):
            result[key] = RPFunctions.is_true(result.get(key))
        try:
            result['timeout'] = int(result.get('timeout') or 600)
        except ValueError:
            Log.warn(app, f"Invalid timeout '{result['timeout']}', using 600")
            result['timeout'] = 600
        result['site_mappings'] = RPFunctions.get_site_mappings(
            app, config_file, config=config)
        return result

    @staticmethod
    def is_true(value):
        return str(value).strip().lower() in ('1', 'true', 'yes', 'y', 'on')

    @staticmethod
    def get_site_mappings(app, config_file, config=None):
        """Return {blog_id: (old_domain, new_domain)} from [site_mappings]"""
        config = config or RPFunctions.read_config(config_file)
        mappings = {}
        for key, value in config.items('site_mappings'):
            old_domain, sep, new_domain = value.partition(':')
            if not key.strip().isdigit() or not sep:
                Log.debug(app, f"Ignoring malformed site mapping: {key} = {value}")
                continue
            mappings[int(key)] = (old_domain.strip(), new_domain.strip())
        return dict(sorted(mappings.items()))

    @staticmethod
    def write_config(config, config_file):
        with open(config_file, 'w') as f:
            f.write("# WordPress Database Import Configuration\n")
            f.write("# [site_mappings] format: blog_id = old_domain:new_domain\n\n")
            config.write(f)

    @staticmethod
    def domains_differ(first, second):
        """True when two domain inputs name different addresses"""
        return (WPDomain.sanitize(first).lower() !=
                WPDomain.sanitize(second).lower())

    @staticmethod
    def update_general(app, config_file, key, value):
        config = RPFunctions.read_config(config_file)
        config.set('general', key, str(value))
        RPFunctions.write_config(config, config_file)
        Log.debug(app, f"Saved {key}={value} to {config_file}")

    @staticmethod
    def save_site_mappings(app, config_file, mappings):
        """Persist confirmed mappings as blog_id = old:new"""
        config = RPFunctions.read_config(config_file)
        for mapping in mappings:
            config.set('site_mappings', str(mapping.site_id),
                       f"{mapping.source_address()}:{mapping.target_address()}")
        RPFunctions.write_config(config, config_file)
        Log.debug(app, f"Saved {len(mappings)} site mappings to {config_file}")

    @staticmethod
    def detect_database_domain(app, wpcli):
        """Host part of siteurl (or home) as stored in the database"""
        for option in ('siteurl', 'home'):
            try:
                url = wpcli.option_get(option)
            except ExternalInterfaceError as e:
                Log.debug(app, f"Could not read {option}: {e}")
                continue
            match = re.match(r'^(?:https?://)?([^/]+)', url.strip())
            if match:
                return match.group(1)
        return None

    @staticmethod
    def flush_caches(app, wpcli, network=False, url=None):
        """Best-effort cache, rewrite rule and transient cleanup"""
        steps = [
            ("Object cache flushed", lambda: wpcli.flush_cache(url=url)),
            ("Rewrite rules flushed",
             lambda: wpcli.flush_rewrite_rules(url=url)),
            ("All transients deleted",
             lambda: wpcli.delete_all_transients(network=network, url=url)),
        ]
        flushed = 0
        for label, step in steps:
            try:
                step()
                Log.valide(app, label)
                flushed += 1
            except ExternalInterfaceError as e:
                Log.warn(app, f"{label.split(' ')[0]} cleanup skipped: {e}")
        return flushed

    @staticmethod
    def clean_revisions(app, wpcli, site_urls=None):
        """Delete every post revision, per site when site_urls is given"""
        deleted = {}
        for url in (site_urls or [None]):
            label = url or 'main site'
            try:
                ids = wpcli.revision_ids(url=url)
                if not ids:
                    Log.info(app, f"   No revisions found for {label}")
                    deleted[label] = 0
                    continue
                wpcli.delete_posts(ids, url=url)
                Log.valide(app, f"   Deleted {len(ids)} revisions for {label}")
                deleted[label] = len(ids)
            except ExternalInterfaceError as e:
                Log.warn(app, f"   Failed to delete revisions for {label}: {e}")
        return deleted

    @staticmethod
    def site_links(sites, scheme='https'):
        """[(blog_id, url, admin_url)] for each site"""
        links = []
        for site in sites:
            host, extra = WPDomain.split_host_path(site.domain)
            address = WPDomain.with_path(
                host, WPDomain.join_path(extra, site.path))
            url = f"{scheme}://{address}/"
            links.append((site.id, url, f"{url}wp-admin/"))
        return links

    @staticmethod
    def test_site(app, url, timeout=5):
        """Check that a migrated site answers without a server error"""
        try:
            response = requests.get(url, timeout=timeout, verify=False,
                                    allow_redirects=True)
            return response.status_code < 500
        except requests.RequestException as e:
            Log.debug(app, f"Site check failed for {url}: {e}")
            return False
