"""Backend manager for django-imagefacade.

Provides factory function to get the configured backend (Pillow, pyvips
or Wand).
"""

import logging

from django.conf import settings


logger = logging.getLogger(__name__)

_backend_instances = {}


def get_setting(name, default):
    """Read an IMAGEFACADE_* setting, falling back when Django is unconfigured."""
    if not settings.configured:
        return default
    return getattr(settings, name, default)


def _create_backend(backend_name):
    if backend_name == "pillow":
        from imagefacade.backend_pillow import PillowBackend  # noqa: PLC0415

        return PillowBackend()
    elif backend_name == "vips":
        try:
            from imagefacade.backend_vips import VipsBackend  # noqa: PLC0415
        except ImportError as e:
            raise ImportError(
                "pyvips not installed. Install with: pip install pyvips"
            ) from e
        return VipsBackend()
    elif backend_name == "wand":
        try:
            from imagefacade.backend_wand import WandBackend  # noqa: PLC0415
        except ImportError as e:
            raise ImportError(
                "Wand not installed. Install with: pip install Wand"
            ) from e
        return WandBackend()
    raise ValueError(
        f"Unknown backend: {backend_name}. Valid options are: 'pillow', 'vips', 'wand'"
    )


def get_backend(name=None):
    """Get backend singleton.

    Returns the backend called ``name``, or the one configured in
    settings.IMAGEFACADE_BACKEND. Defaults to the Pillow backend.

    Returns:
        ImageBackend: The backend instance (PillowBackend, VipsBackend or
        WandBackend)

    Raises:
        ImportError: If the library of the selected backend is not installed
        ValueError: If unknown backend name is specified
    """
    if name is None:
        name = get_setting("IMAGEFACADE_BACKEND", "pillow")
    backend_name = name.lower()

    if backend_name not in _backend_instances:
        _backend_instances[backend_name] = _create_backend(backend_name)
        logger.debug("Image backend %r initialized", backend_name)

    return _backend_instances[backend_name]


def reset_backend():
    """Reset backend singletons.

    Used for testing to allow switching backends within test suite.
    """
    _backend_instances.clear()


__all__ = ["get_backend", "reset_backend"]
