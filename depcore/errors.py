"""
Error types for the deppack pipeline.

Every failure carries the stage ("action") that raised it and the underlying cause so it
can be reported as a structured ``{success: false, action, error}`` payload.
"""


class DeployError(Exception):
    """Base exception for pipeline failures with stage name, path and cause."""
    action = "deploy"

    def __init__(self, message, action=None, path=None, cause=None, details=None):
        self.message = message
        if action is not None:
            self.action = action
        self.path = path
        self.cause = cause
        self.details = details  # Raw diagnostics (e.g. bundler error list)
        super().__init__(self._format_error())

    def _format_error(self):
        """Format the error message with stage, path and cause."""
        lines = [f"\n❌ {type(self).__name__} during '{self.action}'"]
        if self.path:
            lines.append(f" ({self.path})")
        lines.append(":\n")
        lines.append(f"   {self.message}\n")
        if self.cause is not None:
            lines.append(f"   > {type(self.cause).__name__}: {self.cause}\n")
        return "".join(lines)

    def to_payload(self):
        """Structured failure object for reports and CLI output."""
        error = {"type": type(self).__name__, "message": self.message}
        if self.path:
            error["path"] = str(self.path)
        if self.cause is not None:
            error["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        if self.details is not None:
            error["details"] = self.details
        return {"success": False, "action": self.action, "error": error}


class ConfigError(DeployError):
    action = "loadConfig"


class MissingEntryModule(DeployError):
    """A package folder has no entry module. The folder is skipped, not failed."""
    action = "readEntryModule"


class ModuleIOError(DeployError):
    """Read, stat or directory listing failure inside one folder's sub-pipeline."""
    action = "readEntryModule"


class PatternResolutionError(DeployError):
    """The search root of a dynamic import cannot be determined."""
    action = "resolvePaths"


class RewriteError(DeployError):
    action = "updateIndex"


class RegistryWriteError(DeployError):
    action = "writeRegistry"


class BundlerError(DeployError):
    action = "bundle"
