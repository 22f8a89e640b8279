import os
import tempfile
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

LEDGER_TABLES = {
    "users",
    "products",
    "orders",
    "order_items",
    "referral_codes",
    "affiliates",
    "affiliate_links",
    "commission_referrals",
    "wallets",
    "banks",
    "withdrawal_requests",
    "email_queue",
}


def _make_alembic_config(db_url: str) -> Config:
    repo_root = Path(__file__).resolve().parents[1]
    backend_dir = repo_root / "backend"
    config = Config(str(backend_dir / "alembic.ini"))
    config.set_main_option("script_location", str(backend_dir / "alembic"))
    config.set_main_option("sqlalchemy.url", db_url)
    config.set_main_option("prepend_sys_path", str(backend_dir))
    return config


def _tables(db_url: str) -> set[str]:
    engine = create_engine(db_url)
    try:
        return set(inspect(engine).get_table_names()) - {"alembic_version"}
    finally:
        engine.dispose()


def main() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        db_url = f"sqlite:///{Path(tmpdir) / 'migration_smoke.db'}"
        os.environ["DATABASE_URL"] = db_url
        os.environ["SECRET_KEY"] = os.getenv("SECRET_KEY", "smoke-test-secret")

        config = _make_alembic_config(db_url)
        command.upgrade(config, "head")
        missing = LEDGER_TABLES - _tables(db_url)
        if missing:
            raise SystemExit(f"Tables missing after upgrade: {sorted(missing)}")
        command.downgrade(config, "base")
        leftover = _tables(db_url)
        if leftover:
            raise SystemExit(f"Tables left after downgrade: {sorted(leftover)}")
        command.upgrade(config, "head")
        print("Migration smoke test passed.")


if __name__ == "__main__":
    main()
