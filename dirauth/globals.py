"""
Access to application configuration and per-context globals.

These are the config and ``g`` helpers from ``arxiv.base.globals``, kept here
so that the package does not depend on arxiv-base.
"""

from typing import Any, Mapping, Optional
import os

from flask import current_app, g, has_app_context


def get_application_config(app: Optional[Any] = None) -> Mapping[str, Any]:
    """
    Get a configuration from the current app, or fall back to env.

    Parameters
    ----------
    app : :class:`flask.Flask`

    Returns
    -------
    dict-like
        This is either the current Flask application configuration, or
        ``os.environ``. Either of these should support the ``get()`` method.

    """
    if app is not None:
        return app.config   # type: ignore
    if has_app_context():
        return current_app.config   # type: ignore
    return os.environ


def get_application_global() -> Optional[Any]:
    """
    Get the current global application context, if one exists.

    Returns
    -------
    :data:`flask.g` or ``None``

    """
    if has_app_context():
        return g
    return None
