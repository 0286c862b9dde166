# Supabase Auth + user_profiles
# Authentication is handled by Supabase Auth (auth.users table)

"""
Supabase Auth provides:
- auth.sign_up() - Register new users
- auth.sign_in_with_password() - Authenticate users
- auth.get_user() - Get current user from JWT token
- auth.sign_out() - Logout users

user_profiles:
- id: uuid (primary key, references auth.users.id)
- email: text (unique, not null) - synced from auth.users, stored lower-case
- full_name: text (nullable)
- user_type: text (not null, default: 'personal') - personal, company
- created_at: timestamp (default: now())

user_type is written from the sign-up metadata by a database trigger and
changed from 'personal' to 'company' when the user accepts a company invitation.
"""
