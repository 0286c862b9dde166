# Supabase tables: companies, company_members
# This file documents the expected database schema
# Actual operations are handled via CompanyStore (splarve/database/company_store.py)

"""
Expected Supabase table structure:

companies:
- id: uuid (primary key)
- name: text (not null)
- handle: text (not null, unique)
- description: text (nullable)
- website: text (nullable)
- logo_url: text (nullable)
- created_by: uuid (foreign key to user_profiles.id)
- created_at: timestamp (default: now())

company_members:
- company_id: uuid (foreign key to companies.id, not null)
- user_id: uuid (foreign key to user_profiles.id, not null)
- role_id: uuid (foreign key to company_roles.id, not null)
- joined_at: timestamp (default: now())
- primary key (company_id, user_id) - at most one membership per company

Note: the legacy text "role" column (owner/admin/hr/social/member) is no longer
written. Legacy rows are migrated onto the seeded default roles by position.

create_company(p_company jsonb, p_owner_id uuid, p_roles jsonb) -> companies
- Single transaction: INSERT the companies row from p_company; for every entry of
  p_roles (name, color, position, is_default, permissions) INSERT company_roles and
  its company_role_permissions rows; INSERT company_members (company, p_owner_id,
  the Owner role). A duplicate handle or any failed step rolls everything back.
"""
