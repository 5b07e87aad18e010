"""authsession -- client-side authorization session core.

Caches Bearer credentials for a mobile/desktop backend SDK, detects
responses that demand (re)authorization, and routes realm-specific
challenges to pluggable authentication listeners.

Typical workflow::

    from authsession.auth import create_instance

    manager = create_instance(config, process=MyAuthorizationProcess())
    manager.add_cached_authorization_header(request)

The ``authsession`` console script inspects and manages a persisted
session (``authsession status``, ``authsession policy set never``).

Modules:
    auth: Session manager, credential store, detector, challenge handlers.
    storage: Durable key/value backends.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    app: Typer CLI entry point.
"""

__version__ = "0.1.0"
