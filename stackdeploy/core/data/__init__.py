"""Static data tables for the installer (distributions, .env keys)."""
