"""wpreplace error types"""


class MigrationError(Exception):
    """Base class for every error raised by a migration run"""


class ConfigurationError(MigrationError):
    """Missing or invalid mapping input"""


class ValidationError(MigrationError):
    """Malformed domain input, rejected at the boundary"""

    def __init__(self, value, reason):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid domain '{value}': {reason}")


class ExternalInterfaceError(MigrationError):
    """WP-CLI returned non-zero or could not be reached"""

    def __init__(self, message, command=None, returncode=None, stderr=''):
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr or ''
        super().__init__(message)

    def __str__(self):
        text = super().__str__()
        if self.stderr:
            text = f"{text}: {self.stderr.strip()}"
        return text


class RoutingUpdateError(MigrationError):
    """wp_blogs / wp_site update failed, manual statements are required"""
