"""Hydro-Québec winter peak period tracking."""
