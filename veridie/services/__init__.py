"""Clients for Stripe, Calendly and Supabase, and the Calendly token lifecycle"""
