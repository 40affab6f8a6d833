"""
MallPark - mall parking management system

Layers:
- domain: entities, value objects, allocation and pricing strategies
- application: use cases exposed to the API
- infrastructure: persistence, messaging, configuration
- presentation: HTTP API
"""

__version__ = "1.0.0"
