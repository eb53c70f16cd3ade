"""
Application Modules.

- backend/: Note service API, token and sealing core, database, configuration
"""
