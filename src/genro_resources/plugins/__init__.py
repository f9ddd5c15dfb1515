"""Plugin package for Genro Resources.

This package contains built-in plugins for the Dispatcher.

Note: Do not import concrete plugins here to keep imports side-effect free.
Concrete plugin modules (logging, auth) self-register when imported
via the main genro_resources package.
"""

__all__: list[str] = []
