"""
Run Alembic against the marketplace schema without an alembic.ini.

    python -m marketplace_api.db.run_migrations upgrade head
    python -m marketplace_api.db.run_migrations downgrade base
    python -m marketplace_api.db.run_migrations current

The API calls ``main(["upgrade", "head"])`` on startup when
RUN_MIGRATIONS_ON_STARTUP is enabled.
"""

import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List

from alembic import command
from alembic.config import Config

from marketplace_api.db.config import get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

# command name -> (alembic function, default arguments)
_COMMANDS: Dict[str, tuple[Callable[..., object], List[str]]] = {
    "upgrade": (command.upgrade, ["head"]),
    "downgrade": (command.downgrade, ["-1"]),
    "current": (command.current, []),
    "history": (command.history, []),
    "heads": (command.heads, []),
    "stamp": (command.stamp, ["head"]),
}


# PUBLIC_INTERFACE
def alembic_config() -> Config:
    """Alembic config pointing at the bundled migrations and the configured database."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # offline mode only; env.py opens its own async engine when online
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url.replace("%", "%%"))
    return cfg


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Dispatch one Alembic command; exits with status 2 on unknown commands."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        sys.exit(f"usage: run_migrations {{{','.join(_COMMANDS)}}} [revision]")

    name, rest = args[0], args[1:]
    if name not in _COMMANDS:
        logger.error("Unsupported Alembic command: %s", name)
        sys.exit(2)

    func, defaults = _COMMANDS[name]
    logger.info("alembic %s %s", name, " ".join(rest or defaults))
    func(alembic_config(), *(rest or defaults))


if __name__ == "__main__":
    main()
