"""Components for the Dealer Analytics Chat application"""
from .dashboard import Dashboard
from .chat_manager import ChatManager
from .memory_viewer import MemoryViewer

__all__ = ['Dashboard', 'ChatManager', 'MemoryViewer']
