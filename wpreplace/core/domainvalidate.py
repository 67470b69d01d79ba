"""wpreplace domain sanitation and validation"""

import re

from wpreplace.core.errors import ValidationError


class WPDomain():
    """Normalise free-form domain/URL input into a comparable form"""

    PROTOCOLS = ('https://', 'http://')
    MAX_LENGTH = 2048
    FORBIDDEN = re.compile(r'[;|&$`()<>"\']')
    CONTROL = re.compile(r'[\x00-\x1f\x7f]')

    @staticmethod
    def sanitize(raw):
        """Strip whitespace, one leading protocol and one trailing slash.

        >>> WPDomain.sanitize(' https://www.example.com/ ')
        'www.example.com'
        """
        if not raw:
            return ''
        domain = raw.strip()
        for protocol in WPDomain.PROTOCOLS:
            if domain[:len(protocol)].lower() == protocol:
                domain = domain[len(protocol):]
                break
        if domain.endswith('/'):
            domain = domain[:-1]
        return domain.strip()

    @staticmethod
    def validate(value):
        """Return value unchanged or raise ValidationError"""
        if not value:
            raise ValidationError(value, "empty domain")
        if len(value) > WPDomain.MAX_LENGTH:
            raise ValidationError(value, "longer than 2048 characters")
        if WPDomain.CONTROL.search(value):
            raise ValidationError(value, "contains control characters")
        if any(c.isspace() for c in value):
            raise ValidationError(value, "contains whitespace")
        if WPDomain.FORBIDDEN.search(value):
            raise ValidationError(value, "contains shell or SQL metacharacters")
        if value.startswith('/'):
            raise ValidationError(value, "missing host")
        return value

    @staticmethod
    def normalize_path(path):
        """'' and '/' become '/', anything else becomes '/x/'"""
        clean = (path or '').strip().strip('/')
        if not clean:
            return '/'
        return f"/{clean}/"

    @staticmethod
    def split_host_path(value):
        """Split 'example.test/blog' into ('example.test', '/blog/')"""
        host, _, path = value.partition('/')
        return host, WPDomain.normalize_path(path)

    @staticmethod
    def join_path(first, second):
        """Join two normalised paths: ('/shop/', '/en/') -> '/shop/en/'"""
        parts = [p for p in (first.strip('/'), second.strip('/')) if p]
        return WPDomain.normalize_path('/'.join(parts))

    @staticmethod
    def with_path(host, path):
        """'example.test' + '/blog/' -> 'example.test/blog'"""
        clean = (path or '').strip('/')
        if not clean:
            return host
        return f"{host}/{clean}"


def sanitize_domain(raw):
    return WPDomain.sanitize(raw)


def validate_domain(value):
    return WPDomain.validate(value)


def split_host_path(value):
    return WPDomain.split_host_path(value)
