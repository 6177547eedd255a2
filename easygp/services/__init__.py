"""
Service layer between the HTTP adapter and the diagnosis engine.
"""
