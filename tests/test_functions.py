import requests

from tests.conftest import FakeWPCli
from wpreplace.cli.plugins.replace_functions import RPFunctions
from wpreplace.cli.plugins.replace_mappings import DomainMapping
from wpreplace.cli.plugins.replace_sites import Site


def test_load_config_defaults(ctx, tmp_path):
    config = RPFunctions.load_config(ctx, str(tmp_path / 'wpdb-import.conf'))
    assert config['sql_file'] == 'vip-db.sql'
    assert config['all_tables'] is True
    assert config['dry_run'] is False
    assert config['allow_root'] is False
    assert config['clear_revisions'] is True
    assert config['auto_proceed'] is False
    assert config['timeout'] == 600
    assert config['site_mappings'] == {}


def test_load_config_file(ctx, tmp_path):
    path = tmp_path / 'wpdb-import.conf'
    path.write_text(
        "[general]\n"
        "old_domain = www.example.com\n"
        "dry_run = yes\n"
        "clear_revisions = false\n"
        "auto_proceed = true\n"
        "timeout = abc\n"
        "\n"
        "[site_mappings]\n"
        "3 = shop.example.com:shop.example.test\n"
        "2 = blog.example.com:blog.example.test\n"
        "bad = nothing\n")
    config = RPFunctions.load_config(ctx, str(path))
    assert config['old_domain'] == 'www.example.com'
    assert config['dry_run'] is True
    assert config['clear_revisions'] is False
    assert config['auto_proceed'] is True
    assert config['timeout'] == 600
    assert config['site_mappings'] == {
        2: ('blog.example.com', 'blog.example.test'),
        3: ('shop.example.com', 'shop.example.test'),
    }
    assert list(config['site_mappings']) == [2, 3]


def test_save_site_mappings(ctx, tmp_path):
    path = str(tmp_path / 'wpdb-import.conf')
    RPFunctions.update_general(ctx, path, 'new_domain', 'example.test')
    RPFunctions.save_site_mappings(ctx, path, [
        DomainMapping(2, 'example.com', '/shop/', 'example.test', '/shop/'),
    ])
    config = RPFunctions.load_config(ctx, path)
    assert config['new_domain'] == 'example.test'
    assert config['site_mappings'] == {
        2: ('example.com/shop', 'example.test/shop')}


def test_find_wp_root(tmp_path):
    (tmp_path / 'wp-config.php').write_text('<?php\n')
    nested = tmp_path / 'wp-content' / 'uploads'
    nested.mkdir(parents=True)
    assert RPFunctions.find_wp_root(str(nested)) == str(tmp_path)


def test_wp_config_constant(tmp_path):
    (tmp_path / 'wp-config.php').write_text(
        "<?php\n"
        "define( 'MULTISITE', true );\n"
        "// define('SUBDOMAIN_INSTALL', true);\n"
        "define(\"SUBDOMAIN_INSTALL\", false);\n")
    root = str(tmp_path)
    assert RPFunctions.wp_config_constant(root, 'MULTISITE') is True
    assert RPFunctions.wp_config_constant(root, 'SUBDOMAIN_INSTALL') is False
    assert RPFunctions.wp_config_constant(root, 'WP_DEBUG') is None
    assert RPFunctions.wp_config_constant(str(tmp_path / 'x'),
                                          'MULTISITE') is None


def test_detect_database_domain(ctx, wpcli):
    assert RPFunctions.detect_database_domain(ctx, wpcli) == 'www.example.com'


def test_flush_caches_is_best_effort(ctx):
    wpcli = FakeWPCli()
    wpcli.fail_flush = {'cache'}
    assert RPFunctions.flush_caches(ctx, wpcli, network=True,
                                    url='example.test') == 2
    flushed = [e[1] for e in wpcli.events if e[0] == 'flush']
    assert flushed == ['cache', 'rewrite', 'transient']


def test_clean_revisions_per_site(ctx):
    wpcli = FakeWPCli()
    wpcli.revisions = {'https://a.test/': ['4', '5'], 'https://b.test/': []}
    deleted = RPFunctions.clean_revisions(ctx, wpcli, wpcli.site_urls())
    assert deleted == {'https://a.test/': 2, 'https://b.test/': 0}
    assert ('delete_posts', ['4', '5'], 'https://a.test/') in wpcli.events


def test_site_links():
    links = RPFunctions.site_links([Site(1, 'example.test', '/'),
                                    Site(2, 'example.test', '/shop/')])
    assert links == [
        (1, 'https://example.test/', 'https://example.test/wp-admin/'),
        (2, 'https://example.test/shop/',
         'https://example.test/shop/wp-admin/'),
    ]


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


def test_site_check(ctx, monkeypatch):
    monkeypatch.setattr(requests, 'get',
                        lambda url, **kwargs: FakeResponse(302))
    assert RPFunctions.test_site(ctx, 'https://example.test/')
    monkeypatch.setattr(requests, 'get',
                        lambda url, **kwargs: FakeResponse(503))
    assert not RPFunctions.test_site(ctx, 'https://example.test/')


def test_site_check_connection_error(ctx, monkeypatch):
    def refuse(url, **kwargs):
        raise requests.ConnectionError('refused')

    monkeypatch.setattr(requests, 'get', refuse)
    assert not RPFunctions.test_site(ctx, 'https://example.test/')


def test_domains_differ():
    assert not RPFunctions.domains_differ('https://WWW.Example.com/',
                                          'www.example.com')
    assert RPFunctions.domains_differ('example.com', 'www.example.com')
    assert RPFunctions.domains_differ('old.example.com', 'example.com')
