"""wpreplace Rewrite Plan Module
Turns one DomainMapping into the literal search-replace passes to run.
"""

from collections import namedtuple

from wpreplace.core.domainvalidate import WPDomain
from wpreplace.core.errors import ConfigurationError

RewriteStep = namedtuple('RewriteStep',
                         ['search', 'replace', 'serialized', 'site_id'])


def escape_serialized(value):
    """JSON-style escaping used inside serialized strings: / -> \\/"""
    return value.replace('/', '\\/')


def plain_literal(value):
    return f"//{value}"


def serialized_literal(value):
    return escape_serialized(plain_literal(value))


def addresses(mapping, main_site_id=None):
    """Return (source_with_path, target_with_path) for one mapping.

    The source carries a trailing slash only when the target does.
    """
    target = WPDomain.with_path(mapping.target_domain, mapping.target_path)
    if mapping.site_id == main_site_id or mapping.source_path in ('', '/'):
        source = mapping.source_domain
    else:
        source = WPDomain.with_path(mapping.source_domain, mapping.source_path)
    source = source.rstrip('/')
    if target.endswith('/'):
        source += '/'
    return source, target


def www_variants(source):
    """Return (has_www, non_www, www) for a source address"""
    if source.startswith('www.'):
        return True, source[len('www.'):], source
    return False, source, f"www.{source}"


def compile_plan(mapping, main_site_id=None):
    """Ordered RewriteSteps: plain non-www, plain www, serialized non-www,
    serialized www. The www passes exist only when the source has www.
    """
    if not mapping.source_domain or not mapping.target_domain:
        raise ConfigurationError(
            f"Mapping for Blog ID {mapping.site_id} needs both a source and "
            f"a target domain")

    source, target = addresses(mapping, main_site_id)
    has_www, non_www, www = www_variants(source)

    plain = [RewriteStep(plain_literal(non_www), plain_literal(target),
                         False, mapping.site_id)]
    serialized = [RewriteStep(serialized_literal(non_www),
                              serialized_literal(target), True,
                              mapping.site_id)]
    if has_www:
        plain.append(RewriteStep(plain_literal(www), plain_literal(target),
                                 False, mapping.site_id))
        serialized.append(RewriteStep(serialized_literal(www),
                                      serialized_literal(target), True,
                                      mapping.site_id))
    return plain + serialized


def compile_plans(mappings, main_site_id):
    """[(steps, site_id)] for every mapping, in mapping order"""
    return [(compile_plan(m, main_site_id), m.site_id) for m in mappings]
