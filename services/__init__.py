"""Data-access functions, one per Supabase table operation.

Every function takes the Supabase ``AsyncClient`` as its first argument.
"""
