# Supabase tables: company_roles, company_role_permissions, system_permissions
# This file documents the expected database schema
# Actual operations are handled via CompanyStore (splarve/database/company_store.py)

"""
Expected Supabase table structure:

system_permissions:
- name: text (primary key) - e.g., "invite_users", "manage_roles"
- category: text (not null) - display grouping only, e.g., "members", "job_posts"
- description: text (nullable)

company_roles:
- id: uuid (primary key)
- company_id: uuid (foreign key to companies.id, not null)
- name: text (not null) - unique per company
- color: text (nullable)
- position: integer (not null, default: 0) - rank, higher = more senior
- is_default: boolean (not null, default: false) - seeded Owner/Admin/HR/Social/Member
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- unique constraint on (company_id, name)

company_role_permissions:
- role_id: uuid (foreign key to company_roles.id, on delete cascade)
- permission: text (foreign key to system_permissions.name)
- enabled: boolean (not null, default: false)
- primary key (role_id, permission)

delete_company_role(p_role_id uuid, p_transfer_to_role_id uuid) -> json {success, message}
- Single transaction: UPDATE company_members SET role_id = p_transfer_to_role_id
  WHERE role_id = p_role_id; DELETE FROM company_roles WHERE id = p_role_id
  (grants cascade). Both roles must share a company. Refusals come back as
  {"success": false, "message": ...} rather than as an error.
"""
