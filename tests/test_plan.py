import pytest

from wpreplace.cli.plugins.replace_mappings import DomainMapping
from wpreplace.cli.plugins.replace_plan import (addresses, compile_plan,
                                                compile_plans,
                                                escape_serialized)
from wpreplace.core.errors import ConfigurationError


def pairs(steps):
    return [(s.search, s.replace, s.serialized) for s in steps]


def test_www_source_gets_four_steps_in_order():
    mapping = DomainMapping(1, 'www.example.com', '/', 'example.test', '/')
    steps = compile_plan(mapping, main_site_id=1)
    assert pairs(steps) == [
        ('//example.com', '//example.test', False),
        ('//www.example.com', '//example.test', False),
        ('\\/\\/example.com', '\\/\\/example.test', True),
        ('\\/\\/www.example.com', '\\/\\/example.test', True),
    ]
    assert {s.site_id for s in steps} == {1}


def test_plain_source_gets_two_steps():
    mapping = DomainMapping(1, 'example.com', '/', 'example.test', '/')
    assert pairs(compile_plan(mapping, 1)) == [
        ('//example.com', '//example.test', False),
        ('\\/\\/example.com', '\\/\\/example.test', True),
    ]


def test_subdirectory_site_keeps_paths():
    mapping = DomainMapping(2, 'example.com', '/shop/', 'example.test',
                            '/shop/')
    assert pairs(compile_plan(mapping, 1)) == [
        ('//example.com/shop', '//example.test/shop', False),
        ('\\/\\/example.com\\/shop', '\\/\\/example.test\\/shop', True),
    ]


def test_main_site_source_is_bare_domain():
    mapping = DomainMapping(1, 'example.com', '/blog/', 'example.test', '/')
    source, target = addresses(mapping, main_site_id=1)
    assert (source, target) == ('example.com', 'example.test')


def test_source_trailing_slash_follows_target():
    mapping = DomainMapping(3, 'a.com', '/', 'b.com/', '/')
    assert addresses(mapping, 1) == ('a.com/', 'b.com/')


def test_escape_serialized():
    assert escape_serialized('//a.com/x') == '\\/\\/a.com\\/x'


@pytest.mark.parametrize('mapping', [
    DomainMapping(1, '', '/', 'example.test', '/'),
    DomainMapping(1, 'example.com', '/', '', '/'),
])
def test_empty_side_raises(mapping):
    with pytest.raises(ConfigurationError):
        compile_plan(mapping, 1)


def test_compile_plans_keeps_mapping_order():
    mappings = [DomainMapping(1, 'example.com', '/', 'example.test', '/'),
                DomainMapping(2, 'blog.example.com', '/', 'blog.test', '/')]
    plans = compile_plans(mappings, 1)
    assert [site_id for _, site_id in plans] == [1, 2]
    assert plans[1][0][0].search == '//blog.example.com'
