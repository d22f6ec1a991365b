"""
Script para cargar cuentas CRM desde JSON a la base de datos.

Uso:
    python -m scripts.seed_accounts                 # Usa data/accounts_seed.json
    python -m scripts.seed_accounts --file path     # Archivo JSON personalizado
    python -m scripts.seed_accounts --dry-run       # Ver que haria sin ejecutar

Formato del JSON (lista):
    [{"id": "12345", "name": "Acme", "refresh_token": "...", "is_active": true}]

Es idempotente: actualiza tokens y estado de cuentas existentes sin tocar
sus checkpoints.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

from loguru import logger

_WORKER_ROOT = Path(__file__).resolve().parents[1]
if str(_WORKER_ROOT) not in sys.path:
    sys.path.insert(0, str(_WORKER_ROOT))

from crm_sync.infrastructure.database.session import AsyncSessionLocal, close_db, init_db
from crm_sync.infrastructure.repositories.account_repository import AccountRepository

DEFAULT_SEED_FILE = _WORKER_ROOT / "data" / "accounts_seed.json"


def load_accounts_data(file_path: Path) -> list:
    """
    Carga la lista de cuentas desde archivo JSON.

    Raises:
        SystemExit: si el archivo no existe o no es una lista
    """
    if not file_path.exists():
        logger.error(f"Archivo no encontrado: {file_path}")
        raise SystemExit(1)

    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        logger.error("El JSON de cuentas debe ser una lista")
        raise SystemExit(1)

    logger.info(f"Cargadas {len(data)} cuentas desde {file_path}")
    return data


async def seed_accounts(accounts_data: list, dry_run: bool = False) -> dict:
    """
    Inserta o actualiza cuentas en la base de datos.

    Returns:
        Diccionario con estadisticas de la operacion
    """
    stats = {"total": len(accounts_data), "upserted": 0, "errors": 0}

    if dry_run:
        logger.info("[DRY-RUN] Simulando carga...")
        for item in accounts_data:
            logger.info(f"[DRY-RUN] Registraria cuenta {item.get('id')} ({item.get('name')})")
        stats["upserted"] = sum(1 for item in accounts_data if item.get("id"))
        stats["errors"] = stats["total"] - stats["upserted"]
        return stats

    await init_db()

    async with AsyncSessionLocal() as session:
        repo = AccountRepository(session)
        for item in accounts_data:
            account_id = str(item.get("id") or "").strip()
            if not account_id:
                logger.warning(f"Cuenta sin id: {item}")
                stats["errors"] += 1
                continue

            await repo.upsert_account(
                account_id,
                name=item.get("name"),
                access_token=item.get("access_token", ""),
                refresh_token=item.get("refresh_token", ""),
                is_active=bool(item.get("is_active", True)),
            )
            stats["upserted"] += 1

    return stats


async def main() -> int:
    parser = argparse.ArgumentParser(description="Carga cuentas CRM desde JSON")
    parser.add_argument("--file", type=Path, default=DEFAULT_SEED_FILE, help="Archivo JSON de cuentas")
    parser.add_argument("--dry-run", action="store_true", help="Solo mostrar que haria")
    args = parser.parse_args()

    try:
        stats = await seed_accounts(load_accounts_data(args.file), dry_run=args.dry_run)
    finally:
        await close_db()

    prefix = "[DRY-RUN] " if args.dry_run else ""
    logger.info(f"{prefix}Cuentas: total={stats['total']}, registradas={stats['upserted']}, errores={stats['errors']}")
    return 0 if stats["errors"] == 0 else 1


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
