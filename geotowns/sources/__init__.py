"""Readers for the registry endpoint and the OpenStreetMap extract."""
