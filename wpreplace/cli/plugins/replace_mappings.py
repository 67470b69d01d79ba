"""wpreplace Mapping Module
Builds the source -> target (domain, path) mapping for every site.
"""

from collections import namedtuple

from wpreplace.cli.plugins.replace_sites import Topology, resolve_main_site
from wpreplace.core.domainvalidate import WPDomain
from wpreplace.core.errors import ConfigurationError, ValidationError
from wpreplace.core.logging import Log


class DomainMapping(namedtuple('DomainMapping', [
        'site_id', 'source_domain', 'source_path',
        'target_domain', 'target_path'])):
    """Source and target address of one site"""
    __slots__ = ()

    def is_noop(self):
        return (self.source_domain == self.target_domain and
                self.source_path == self.target_path)

    def source_address(self):
        return WPDomain.with_path(self.source_domain, self.source_path)

    def target_address(self):
        return WPDomain.with_path(self.target_domain, self.target_path)


class MappingResult:
    """Outcome of mapping one site: mapped, skipped or invalid"""
    MAPPED = 'mapped'
    SKIPPED = 'skipped'
    INVALID = 'invalid'

    def __init__(self, kind, site_id, mapping=None, reason=None):
        self.kind = kind
        self.site_id = site_id
        self.mapping = mapping
        self.reason = reason

    @classmethod
    def mapped(cls, mapping):
        return cls(cls.MAPPED, mapping.site_id, mapping=mapping)

    @classmethod
    def skipped(cls, site_id, reason=None):
        return cls(cls.SKIPPED, site_id, reason=reason)

    @classmethod
    def invalid(cls, site_id, reason):
        return cls(cls.INVALID, site_id, reason=reason)

    def __repr__(self):
        return (f"MappingResult({self.kind!r}, site_id={self.site_id}, "
                f"mapping={self.mapping!r}, reason={self.reason!r})")


class MappingBuilder:
    """Collect one DomainMapping per site.

    ``prompt`` is called as ``prompt(message, default)`` and returns the
    operator's answer; without it every default is accepted. ``persisted``
    holds targets already confirmed in the configuration file, keyed by
    site id, either as a string or as an ``(old, new)`` pair.
    """

    def __init__(self, ctx, prompt=None, persisted=None):
        self.ctx = ctx
        self.prompt = prompt
        self.persisted = persisted or {}
        self.results = []

    def _ask(self, message, default):
        if self.prompt is None:
            return default
        answer = self.prompt(message, default)
        if answer is None or not answer.strip():
            return default
        return answer

    def _persisted_target(self, site):
        """Configured target for a site, None when absent or stale.

        An ``(old, new)`` pair only applies while ``old`` still names the
        site's current address.
        """
        value = self.persisted.get(site.id)
        if isinstance(value, (tuple, list)):
            old, value = value[0], value[1]
            current = WPDomain.with_path(*self.site_source(site))
            if WPDomain.sanitize(old) != current:
                Log.warn(self.ctx, f"    Ignoring configured mapping for Blog "
                         f"ID {site.id}: '{old}' does not match '{current}'")
                return None
        return value or None

    @staticmethod
    def site_source(site):
        """Host and path of a site, moving any path out of the domain"""
        host, extra = WPDomain.split_host_path(site.domain)
        return host, WPDomain.join_path(extra, site.path)

    def clean(self, raw, label):
        """Sanitize and validate a target, logging what was cleaned"""
        cleaned = WPDomain.sanitize(raw)
        if raw and cleaned != raw.strip():
            Log.info(self.ctx, f"    Cleaned {label}: '{raw}' → '{cleaned}'")
        return WPDomain.validate(cleaned)

    def candidate(self, site, raw, keep_path=False):
        """MappingResult for a raw target entered for a site"""
        source_host, source_path = self.site_source(site)
        if not source_host:
            return MappingResult.skipped(site.id, "empty source domain")
        try:
            target = self.clean(raw or '', f"site {site.id}")
        except ValidationError as e:
            return MappingResult.invalid(site.id, e.reason)
        target_host, target_path = WPDomain.split_host_path(target)
        if keep_path:
            target_path = WPDomain.join_path(target_path, source_path)
        return MappingResult.mapped(DomainMapping(
            site.id, source_host, source_path, target_host, target_path))

    def _record(self, result):
        self.results.append(result)
        if result.kind == MappingResult.MAPPED:
            mapping = result.mapping
            Log.debug(self.ctx, f"Added mapping: '{mapping.source_address()}'"
                      f" → '{mapping.target_address()}' (ID: {result.site_id})")
        elif result.kind == MappingResult.INVALID:
            Log.warn(self.ctx, f"    Skipped invalid mapping for Blog ID "
                     f"{result.site_id}: {result.reason}")
        else:
            Log.debug(self.ctx, f"Skipped Blog ID {result.site_id}: "
                      f"{result.reason}")
        return result

    def build(self, sites, topology, default_target, source_domain=None):
        """Return the accepted DomainMappings, ordered by site id"""
        self.results = []
        if topology == Topology.SINGLE:
            return self._build_single(sites, default_target, source_domain)
        if topology == Topology.SUBDIRECTORY:
            self._build_subdirectory(sites, default_target, source_domain)
        elif topology == Topology.SUBDOMAIN:
            self._build_subdomain(sites, default_target)
        else:
            raise ConfigurationError(f"Unknown topology: {topology}")
        self.duplicate_sources()
        return self.mappings()

    def mappings(self):
        return sorted((r.mapping for r in self.results
                       if r.kind == MappingResult.MAPPED),
                      key=lambda m: m.site_id)

    def _build_single(self, sites, default_target, source_domain):
        source = WPDomain.sanitize(source_domain or
                                   (sites[0].domain if sites else ''))
        if not source:
            raise ConfigurationError("Production domain is required")
        try:
            target = self.clean(default_target or '', "replace domain")
        except ValidationError as e:
            raise ConfigurationError(
                f"Local domain is required: {e.reason}") from e
        WPDomain.validate(source)
        site_id = sites[0].id if sites else 1
        mapping = DomainMapping(site_id, source, '/', target, '/')
        self._record(MappingResult.mapped(mapping))
        return [mapping]

    def _build_subdirectory(self, sites, default_target, source_domain):
        label = source_domain or (sites[0].domain if sites else '')
        raw = self._ask(f"→ Replace '{label}' with (all sites)",
                        default_target)
        try:
            target = self.clean(raw or '', "network domain")
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid network domain '{raw}': {e.reason}") from e
        for site in sites:
            self._record(self.candidate(site, target, keep_path=True))

    def _build_subdomain(self, sites, default_target):
        main_site_id = resolve_main_site(sites)
        for site in sites:
            source_host, source_path = self.site_source(site)
            raw = self._persisted_target(site)
            if raw is not None:
                Log.debug(self.ctx, f"Using configured mapping for Blog ID "
                          f"{site.id}: {raw}")
            else:
                if site.id == main_site_id:
                    default = default_target
                else:
                    default = WPDomain.with_path(source_host, source_path)
                raw = self._ask(f"→ Local URL for "
                                f"'{WPDomain.with_path(source_host, source_path)}'"
                                f" (Blog ID {site.id})", default)
            self._record(self.candidate(site, raw))

    def duplicate_sources(self):
        """[((domain, path), [ids])] for source pairs shared by several ids"""
        seen = {}
        for mapping in self.mappings():
            key = (mapping.source_domain, mapping.source_path)
            seen.setdefault(key, []).append(mapping.site_id)
        duplicates = [(key, ids) for key, ids in seen.items() if len(ids) > 1]
        for (domain, path), ids in duplicates:
            Log.warn(self.ctx, f"Sites {', '.join(map(str, ids))} share "
                     f"{domain}{path}; check the wp_blogs table")
        return duplicates

    def invalid(self):
        return [r for r in self.results if r.kind == MappingResult.INVALID]

    @staticmethod
    def summary(mappings):
        """Display lines for a mapping summary"""
        lines = []
        for mapping in mappings:
            source = mapping.source_address()
            if mapping.is_noop():
                lines.append(f"[ID: {mapping.site_id}] {source} → (unchanged)")
            else:
                lines.append(f"[ID: {mapping.site_id}] {source} → "
                             f"{mapping.target_address()}")
        return lines
