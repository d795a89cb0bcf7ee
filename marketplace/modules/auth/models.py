# Supabase Auth
# This module uses Supabase's built-in authentication system
# No custom tables are required - Supabase Auth handles:
# - User registration (auth.users table)
# - Password and Google OAuth (PKCE) sign in
# - Email confirmation links
# - Session refresh tokens

"""
Supabase Auth provides:
- auth.sign_up() - Register new users; sends the confirmation email
- auth.sign_in_with_password() - Authenticate users
- auth.sign_in_with_oauth() - Start a provider sign in
- auth.exchange_code_for_session() - Finish OAuth / email links (PKCE)
- auth.verify_otp() - Finish token_hash email links
- auth.update_user() - Patch user_metadata
- auth.sign_out() - Logout users

User metadata written by this app:
- username: chosen at sign up or on /auth/complete-profile
- profile_photo_url: set at sign up when a photo was uploaded
- profile_completed: true once the profiles row exists

The session itself travels in the sb-auth-token cookie (see
marketplace/database/cookie_storage.py).
"""
