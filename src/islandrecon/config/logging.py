"""Logging setup for the islandrecon command line."""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(*, verbose: bool = False, force: bool = False) -> None:
    """Initialise the root logger once.

    Stage summaries log at INFO; ``verbose`` adds the per-record DEBUG output
    of the reconciliation stages. SQL statement logging stays at WARNING either
    way. Pass ``force=True`` to reconfigure during tests.
    """

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
