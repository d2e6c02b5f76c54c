"""FinE survey web app: relay endpoint plus the wizard API."""
