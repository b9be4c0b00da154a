"""
Exception classes for the client bootstrap.

Import them like:
    from bootstrap.exceptions import BootstrapError, ComponentTimeoutError, ...
"""
from typing import List, Optional, Sequence

from core.exceptions import ClientCoreError

__all__ = [
    'BootstrapError',
    'ComponentTimeoutError',
    'ConfigurationError',
    'DependencyCycleError',
    'ManifestProcessingError',
]


class BootstrapError(ClientCoreError):
    """
    Base exception for all bootstrap-related errors.

    Raised when a failure during page start-up prevents the application from
    reaching the ready state.
    """

    def __init__(self, message: str, component_name: Optional[str] = None, phase: Optional[str] = None):
        super().__init__(message, component_name=component_name)
        self.phase = phase

    def __str__(self) -> str:
        base_msg = RuntimeError.__str__(self)

        context_parts = []
        if self.phase:
            context_parts.append(f"phase={self.phase}")
        if self.component_name:
            context_parts.append(f"component={self.component_name}")

        if context_parts:
            return f"{base_msg} ({', '.join(context_parts)})"
        return base_msg


class ComponentTimeoutError(BootstrapError):
    """Raised when a component does not become ready within its wait budget."""

    def __init__(self, component_name: str, timeout_seconds: float):
        super().__init__(
            f"Timed out after {timeout_seconds:g}s waiting for component '{component_name}'",
            component_name=component_name,
            phase='wait_for_component',
        )
        self.timeout_seconds = timeout_seconds


class DependencyCycleError(BootstrapError):
    def __init__(self, cycle: Sequence[str]):
        self.cycle: List[str] = list(cycle)
        super().__init__(
            f"Dependency cycle detected: {' -> '.join(self.cycle)}",
            component_name=self.cycle[0] if self.cycle else None,
            phase='init_component',
        )


class ManifestProcessingError(BootstrapError):
    """
    Raised when the component manifest cannot be processed.

    This includes malformed YAML content and entries that fail validation.
    """

    def __init__(self, message: str, manifest_path: Optional[str] = None, schema_errors: Optional[List[str]] = None):
        super().__init__(message, phase="manifest_processing")
        self.manifest_path = manifest_path
        self.schema_errors = schema_errors or []

    def __str__(self) -> str:
        base_msg = super().__str__()

        if self.manifest_path:
            base_msg = f"{base_msg} (manifest={self.manifest_path})"

        if self.schema_errors:
            error_list = "\n  - ".join(self.schema_errors)
            return f"{base_msg}\nSchema errors:\n  - {error_list}"

        return base_msg


class ConfigurationError(BootstrapError):
    """
    Raised when configuration loading or validation fails.

    This includes missing required sections and values that fail the
    AppConfig schema.
    """

    def __init__(self, message: str, component_name: Optional[str] = None):
        super().__init__(message, component_name=component_name, phase='configuration')
