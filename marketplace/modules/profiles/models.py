# Supabase tables: profiles
# This file documents the expected database schema
# Actual operations are handled via the Data Service in service.py

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- username: text (unique) - null/empty until the profile is completed
- email: text (nullable)
- profile_photo_url: text (nullable)
- created_at: timestamp (default: now())

A user without a row, or with an empty username, is sent to
/auth/complete-profile by the route gate.
"""
