"""Run persistence and leaderboard services.

Pure(ish) domain logic imported by the HTTP blueprints. Services take a
SQLAlchemy session at construction and know nothing about requests or
authentication; callers pass the resolved user id in.
"""
