# Supabase table: company_invitations
# This file documents the expected database schema
# Actual operations are handled via CompanyStore (splarve/database/company_store.py)

"""
Expected Supabase table structure:

company_invitations:
- id: uuid (primary key)
- company_id: uuid (foreign key to companies.id, not null)
- invited_by: uuid (foreign key to user_profiles.id)
- email: text (not null) - stored lower-case
- role_id: uuid (foreign key to company_roles.id, not null)
- status: text (not null, default: 'pending') - pending, pre_accepted, accepted, rejected
- message: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- expires_at: timestamp (not null) - created_at + invitation_ttl_days (7)

Accepted, rejected and cancelled invitations are deleted; the accepted and
rejected statuses only appear on rows written before that rule.

Expired pending invitations are not swept; expiry is checked when the
invitation is read or acted upon.

accept_company_invitation(p_invitation_id uuid, p_user_id uuid) -> company_members
- Single transaction: DELETE the invitation WHERE status IN ('pending', 'pre_accepted')
  (no row: return null, another request resolved it); INSERT company_members with the
  invitation's company_id and role_id; UPDATE user_profiles SET user_type = 'company'
  WHERE id = p_user_id AND user_type = 'personal'. Returns the new membership row.
"""
