"""
WEB - Remote interface: service façade + FastAPI transport
"""

from .api import create_app
from .service import AgentService

__all__ = ['AgentService', 'create_app']
