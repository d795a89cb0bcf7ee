# Supabase tables: businesses
# This file documents the expected database schema
# Actual operations are handled via the Data Service in service.py

"""
Expected Supabase table structure:

businesses:
- id: uuid (primary key, references profiles.id) - one listing per user
- name: text (not null)
- address: text (not null)
- description: text (not null)
- email: text (not null) - defaults to the owner's profile email
- location: text (not null)
- instagram_url: text (not null)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""
