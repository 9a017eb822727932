"""
Dealer Analytics Chat

A Streamlit application for asking questions about dealer sales and visits data.
"""
import sys
from pathlib import Path
import logging
import streamlit as st

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Now we can import our modules
from services.constants import DATA_FILE_PATH, DEFAULT_USER_ID
from app.components import Dashboard, ChatManager, MemoryViewer
from app.resources import get_dataset, get_memory
from app.styles import STYLES

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def initialize_session_state():
    """Initialize session state variables"""
    if 'messages' not in st.session_state:
        st.session_state.messages = []
    if 'show_memory' not in st.session_state:
        st.session_state.show_memory = False
    if 'pending_prompt' not in st.session_state:
        st.session_state.pending_prompt = None

def render_sidebar():
    """Render sidebar content"""
    with st.sidebar:
        st.markdown("### 📈 Dealer Data")
        status_placeholder = st.empty()

        try:
            dataset = get_dataset()
            st.caption(f"{len(dataset)} dealers · {len(dataset.metric_columns)} metrics")
            st.caption(f"Source: {DATA_FILE_PATH.name}")
        except FileNotFoundError as e:
            st.error(f"❌ {e}")

        if st.button("🔄 Reload Dataset"):
            with status_placeholder.container():
                st.info("⏳ Reloading dataset...")
                try:
                    get_dataset.clear()
                    get_dataset()
                    st.success("✅ Dataset reloaded!")
                except Exception as e:
                    st.error("❌ Error during reload")
                    with st.expander("See error details"):
                        st.exception(e)

        st.markdown("### ⚙️ Preferences")
        memory = get_memory()
        prefs = memory.get_user_preferences(DEFAULT_USER_ID)
        show_charts = st.checkbox("Show charts", value=prefs.get("show_charts", True))
        if show_charts != prefs.get("show_charts", True):
            memory.store_user_preferences(DEFAULT_USER_ID, {"show_charts": show_charts})

        st.markdown("### 🔍 Tools")

        # Render memory panel in sidebar
        MemoryViewer.render_memory()

def main():
    """Main application entry point"""
    # Page configuration
    st.set_page_config(layout="wide", page_title="Dealer Analytics Chat")
    st.markdown(f"<style>{STYLES}</style>", unsafe_allow_html=True)

    # Initialize session state
    initialize_session_state()

    # Render sidebar
    render_sidebar()

    # Main content area
    st.title("📊 Dealer Analytics Chat")

    # Dashboard section
    with st.container():
        Dashboard().render_dashboard()
        st.markdown("---")

    # Chat interface
    ChatManager.render_chat_interface()

if __name__ == "__main__":
    main()
