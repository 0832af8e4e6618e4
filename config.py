"""Runtime settings for the Papas Locas backend.

Everything is read from environment variables so the same code runs on a
laptop and on the restaurant's box:

  PAPAS_DB_PATH     sqlite file (default data/papas_locas.db)
  PAPAS_POOL_SIZE   max pooled connections (default 5)
  PAPAS_DB_TIMEOUT  seconds to wait for a connection / write lock (default 5)
  PAPAS_HOST        bind address (default 127.0.0.1)
  PAPAS_PORT        port (default 3000)
  PAPAS_DEBUG       "1" enables Flask debug mode
  PAPAS_SEED        "0" skips seeding the default menu
"""
from dataclasses import dataclass
from pathlib import Path
import os

DEFAULT_DB_PATH = Path(__file__).parent / "data" / "papas_locas.db"


def _flag(value: str | None, default: bool) -> bool:
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class Config:
    db_path: str = str(DEFAULT_DB_PATH)
    pool_size: int = 5
    db_timeout: float = 5.0
    host: str = '127.0.0.1'
    port: int = 3000
    debug: bool = False
    seed: bool = True

    @classmethod
    def from_env(cls, environ=None) -> "Config":
        env = os.environ if environ is None else environ
        return cls(
            db_path=env.get('PAPAS_DB_PATH') or str(DEFAULT_DB_PATH),
            pool_size=int(env.get('PAPAS_POOL_SIZE', 5)),
            db_timeout=float(env.get('PAPAS_DB_TIMEOUT', 5.0)),
            host=env.get('PAPAS_HOST', '127.0.0.1'),
            port=int(env.get('PAPAS_PORT', 3000)),
            debug=_flag(env.get('PAPAS_DEBUG'), False),
            seed=_flag(env.get('PAPAS_SEED'), True),
        )
