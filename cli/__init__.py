"""CLI package for pushing readings to and querying the sensor hub.

The Typer application lives in ``cli.app`` and is not re-exported here, so
``cli.app`` keeps resolving to the module (tests patch ``cli.app.ApiClient``).
"""
