from .lifecycle import RunLifecycleManager

__all__ = ['RunLifecycleManager']
