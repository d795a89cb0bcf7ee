# Supabase tables: creators
# This file documents the expected database schema
# Actual operations are handled via the Data Service in service.py

"""
Expected Supabase table structure:

creators:
- id: uuid (primary key, references profiles.id) - one listing per user
- name: text (nullable)
- description: text (not null)
- instagram_url: text (not null)
- tiktok_url: text (not null)
- youtube_url: text (nullable)
- location: text (not null)
- languages: text[] (not null)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""
