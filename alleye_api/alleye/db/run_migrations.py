"""
Programmatic Alembic migration runner.

Runs migrations without an alembic.ini by pointing the script location at
this package's migrations directory.

Usage examples:
    python -m alleye.db.run_migrations upgrade head
    python -m alleye.db.run_migrations downgrade -1
    python -m alleye.db.run_migrations history
"""

import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List

from alembic import command
from alembic.config import Config

from alleye.db.config import get_settings

logger = logging.getLogger(__name__)


def build_config() -> Config:
    """Alembic Config bound to the bundled migrations folder."""
    cfg = Config()
    script_location = Path(__file__).resolve().parent / "migrations"
    cfg.set_main_option("script_location", str(script_location))
    # Offline URL; env.py uses the async URL when connected
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url.replace("%", "%%"))
    return cfg


_COMMANDS: Dict[str, Callable[..., None]] = {
    "upgrade": lambda cfg, *a: command.upgrade(cfg, *(a or ("head",))),
    "downgrade": lambda cfg, *a: command.downgrade(cfg, *(a or ("-1",))),
    "history": command.history,
    "current": command.current,
    "heads": command.heads,
    "revision": lambda cfg, *a: command.revision(cfg, message=" ".join(a) or None),
}


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run an Alembic command with programmatic configuration."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        logger.error("No Alembic arguments provided. Example: upgrade head")
        sys.exit(1)

    cmd, other = args[0], args[1:]
    if cmd == "show":
        if not other:
            logger.error("Usage: show <revision>")
            sys.exit(2)
        command.show(build_config(), other[0])
        return

    handler = _COMMANDS.get(cmd)
    if handler is None:
        logger.error("Unsupported Alembic command: %s", cmd)
        sys.exit(2)
    handler(build_config(), *other)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
