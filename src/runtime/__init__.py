"""Runtime package: settings loading, logging setup, dependency wiring and
background task helpers."""

__all__: list[str] = []
