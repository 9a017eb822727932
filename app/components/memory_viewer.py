"""Interaction memory viewer component"""
import streamlit as st
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.resources import get_memory
from services.data_model import Interaction
from services.visualization_logic import describe_query

class MemoryViewer:
    """Manages the interaction memory panel"""

    @staticmethod
    def render_interaction(interaction: Interaction) -> None:
        """Render a single stored interaction"""
        referenced = '<div class="memory-referenced">Referenced later</div>' if interaction.referenced else ""
        st.markdown(f"""
        <div class="memory-entry">
            <div class="memory-timestamp">
                {interaction.timestamp.strftime('%Y-%m-%d %H:%M:%S')}
            </div>
            <div class="memory-question">Q: {interaction.query}</div>
            <div class="memory-interpretation">{describe_query(interaction.parsed_query)}</div>
            {referenced}
        </div>
        """, unsafe_allow_html=True)

    @staticmethod
    def render_memory() -> None:
        """Render the memory interface in the sidebar"""
        if "show_memory" not in st.session_state:
            st.session_state.show_memory = False

        if st.sidebar.button("🧠 View Interaction Memory", key="toggle_memory"):
            st.session_state.show_memory = not st.session_state.show_memory

        if not st.session_state.show_memory:
            return

        memory = get_memory()
        with st.sidebar:
            stats = memory.get_memory_stats()
            col1, col2 = st.columns(2)
            col1.metric("Interactions", stats["total_interactions"])
            col2.metric("Referenced", stats["referenced_count"])
            st.caption(f"{stats['user_count']} users · capacity {memory.capacity}")

            st.markdown("### Recent Questions")
            recent = memory.get_recent_interactions(include_response=False)

            if not recent:
                st.info("No interaction history yet.")
            else:
                for interaction in recent:
                    with st.expander(f"Q: {interaction.query[:50]}", expanded=False):
                        MemoryViewer.render_interaction(interaction)

                if st.button("🗑️ Clear Memory", key="clear_memory"):
                    memory.clear()
                    st.rerun()
