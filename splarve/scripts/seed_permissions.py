"""
Seed Permissions Script
Populates system_permissions from the config and backfills grant rows for
permissions that default roles of existing companies do not have yet.
Run with: python -m splarve.scripts.seed_permissions
"""

import sys
import logging

from splarve.config.permissions_config import DEFAULT_ROLES, PERMISSION_CATALOG, get_default_role_grants
from splarve.database.company_store import CompanyStore, StoreError
from splarve.database.supabase_client import get_service_supabase

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_permissions(store: CompanyStore) -> int:
    """Upsert the permission catalog"""
    logger.info("Seeding system permissions...")
    count = store.upsert_system_permissions(PERMISSION_CATALOG)
    logger.info(f"System permissions seeded: {count} upserted")
    return count


def backfill_default_role_grants(store: CompanyStore) -> int:
    """Add grant rows for new catalog permissions; existing (possibly customised) grants are left alone"""
    logger.info("Backfilling default role grants...")
    grants = get_default_role_grants()
    added = 0

    for company_id in store.list_company_ids():
        for default_role in DEFAULT_ROLES:
            try:
                role = store.get_role_by_name(company_id, default_role["name"])
                if role is None or not role.is_default:
                    logger.warning(f"Company {company_id} has no default {default_role['name']} role")
                    continue
                existing = store.get_role_permissions(role.id)
                missing = {
                    permission: enabled
                    for permission, enabled in grants[role.name].items()
                    if permission not in existing
                }
                if missing:
                    store.set_role_permissions(role.id, missing)
                    added += len(missing)
                    logger.debug(f"Added {len(missing)} grants to {role.name} in {company_id}")
            except StoreError as e:
                logger.error(f"Error backfilling role {default_role['name']} in {company_id}: {e}")

    logger.info(f"Default role grants backfilled: {added} added")
    return added


def main():
    """Main function to seed permissions and backfill grants"""
    try:
        store = CompanyStore(get_service_supabase())

        logger.info("Starting permissions seeding...")
        perm_count = seed_permissions(store)
        grant_count = backfill_default_role_grants(store)

        logger.info("Seeding completed successfully!")
        logger.info(f"Total: {perm_count} permissions, {grant_count} grants added")
    except StoreError as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
