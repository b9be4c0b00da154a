from .component_registry import ComponentRegistry

__all__ = ['ComponentRegistry']
