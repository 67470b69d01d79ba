"""wpreplace core variable module"""

import os


class WPVar():
    """Intialization of core variables"""

    # wpreplace version
    wp_version = "1.0.0"

    # Configuration file kept next to wp-config.php
    wp_config_file_name = "wpdb-import.conf"

    # Defaults for the [general] section of the configuration file
    wp_config_defaults = {
        'sql_file': 'vip-db.sql',
        'old_domain': '',
        'new_domain': '',
        'all_tables': 'true',
        'dry_run': 'false',
        'clear_revisions': 'true',
        'auto_proceed': 'false',
        'wp_bin': 'wp',
        'allow_root': 'false',
        'timeout': '600',
    }

    # Run history database
    wp_db_dir = os.path.expanduser(os.environ.get(
        'WPREPLACE_HOME', '~/.wpreplace'))
    wp_db_uri = os.environ.get(
        'WPREPLACE_DB', 'sqlite:///' + os.path.join(wp_db_dir, 'runs.db'))

    # Scratch area prefix for per-run logs
    wp_scratch_prefix = "wp_replace_"

    # Default table prefix when WP-CLI cannot report one
    wp_table_prefix = "wp_"
