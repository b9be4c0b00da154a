from .service import DemoLoginService

__all__ = ['DemoLoginService']
