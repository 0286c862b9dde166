# Supabase table: job_posts
# This file documents the expected database schema
# Actual operations are handled via CompanyStore (splarve/database/company_store.py)

"""
Expected Supabase table structure:

job_posts:
- id: uuid (primary key)
- company_id: uuid (foreign key to companies.id, on delete cascade)
- created_by: uuid (foreign key to user_profiles.id, not null) - the author
- title: text (not null)
- description: text (not null)
- location: text (nullable)
- salary_range: text (nullable)
- job_type: text (nullable)
- experience_level: text (nullable)
- skills: text[] (nullable)
- published: boolean (default: false)
- published_at: timestamp (nullable) - set the first time the post is published
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Writes are gated in RoleAuthority: create_job_post to create, then
manage_all_job_posts, or manage_own_job_posts when created_by is the caller,
to edit or delete.
"""
