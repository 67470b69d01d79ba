import pytest

from tests.conftest import FakeWPCli
from wpreplace.cli.plugins.replace_sites import (Site, SiteDirectory,
                                                 Topology, make_site,
                                                 resolve_main_site)
from wpreplace.core.errors import ExternalInterfaceError


@pytest.mark.parametrize('sites, expected', [
    ([Site(2, 'a.com', '/'), Site(3, 'b.com', '/x/')], 2),
    ([Site(5, 'a.com', '/'), Site(4, 'a.com', '/')], 4),
    ([Site(4, 'a.com', '/x/'), Site(3, 'a.com', '/y/')], 3),
    ([], 1),
])
def test_resolve_main_site(sites, expected):
    assert resolve_main_site(sites) == expected


def test_make_site_normalizes_path():
    assert make_site('2', ' example.com ', 'shop') == Site(2, 'example.com',
                                                           '/shop/')


def test_single_site(ctx, tmp_path):
    wpcli = FakeWPCli()
    topology, sites = SiteDirectory(ctx, wpcli, str(tmp_path)).list_sites(
        'www.example.com')
    assert topology == Topology.SINGLE
    assert sites == [Site(1, 'www.example.com', '/')]


def test_subdirectory_multisite_from_rows(ctx, tmp_path):
    wpcli = FakeWPCli(tenants=[(3, 'example.com', '/b/'),
                               (1, 'example.com', '/'),
                               (2, 'example.com', 'shop')])
    topology, sites = SiteDirectory(ctx, wpcli, str(tmp_path)).list_sites(
        'example.com')
    assert topology == Topology.SUBDIRECTORY
    assert [s.id for s in sites] == [1, 2, 3]
    assert sites[1] == Site(2, 'example.com', '/shop/')


def test_multisite_from_wp_config(ctx, tmp_path):
    (tmp_path / 'wp-config.php').write_text(
        "<?php\ndefine( 'MULTISITE', true );\n"
        "define('SUBDOMAIN_INSTALL', true);\n")
    wpcli = FakeWPCli(tenants=[(1, 'example.com', '/')])
    directory = SiteDirectory(ctx, wpcli, str(tmp_path))
    assert directory.detect_multisite('example.com') == (True, 'wp-config')
    topology, sites = directory.list_sites('example.com')
    assert topology == Topology.SUBDOMAIN
    assert sites == [Site(1, 'example.com', '/')]


def test_multisite_from_network_table(ctx, tmp_path):
    wpcli = FakeWPCli(tenants=[(1, 'example.com', '/')], network_rows=1,
                      booleans={'is_subdomain_install()': True})
    directory = SiteDirectory(ctx, wpcli, str(tmp_path))
    assert directory.detect_multisite('example.com') == (True, 'database')
    assert directory.list_sites('example.com')[0] == Topology.SUBDOMAIN


def test_unreachable_wordpress_is_fatal(ctx, tmp_path):
    wpcli = FakeWPCli()
    wpcli.ping_error = True
    with pytest.raises(ExternalInterfaceError):
        SiteDirectory(ctx, wpcli, str(tmp_path)).list_sites('example.com')


def test_unlistable_multisite_is_fatal(ctx, tmp_path):
    wpcli = FakeWPCli(network_rows=1)
    wpcli.list_error = True
    with pytest.raises(ExternalInterfaceError):
        SiteDirectory(ctx, wpcli, str(tmp_path)).list_sites('example.com')


def test_multisite_from_is_multisite_eval(ctx, tmp_path):
    wpcli = FakeWPCli(tenants=[(1, 'example.com', '/')],
                      booleans={'is_multisite()': True})
    directory = SiteDirectory(ctx, wpcli, str(tmp_path))
    assert directory.detect_multisite('example.com') == (True, 'wp-cli')
    topology, sites = directory.list_sites('example.com')
    assert topology == Topology.SUBDIRECTORY
    assert sites == [Site(1, 'example.com', '/')]


def test_single_site_when_every_check_is_negative(ctx, tmp_path):
    wpcli = FakeWPCli(tenants=[(1, 'example.com', '/')])
    directory = SiteDirectory(ctx, wpcli, str(tmp_path))
    assert directory.detect_multisite('example.com') == (False, 'fallback')
