"""Process-wide resources shared by every session of the app"""
import logging
import streamlit as st
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from services.constants import DATA_FILE_PATH, MEMORY_CAPACITY
from services.data_loader import load_dataset
from services.dataset import Dataset
from services.memory import InteractionMemory

logger = logging.getLogger(__name__)

@st.cache_resource
def get_dataset() -> Dataset:
    """Load the dataset once per process. get_dataset.clear() forces a reload."""
    logger.info(f"Loading dataset from {DATA_FILE_PATH}")
    return load_dataset(DATA_FILE_PATH)

@st.cache_resource
def get_memory() -> InteractionMemory:
    """One interaction memory for the whole process"""
    return InteractionMemory(capacity=MEMORY_CAPACITY)
