"""
API routers.
Each router is a thin driver over the report engine.
"""
