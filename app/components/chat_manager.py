"""Chat interface management component"""
import json
import logging
import plotly.io as pio
import streamlit as st
import sys
from pathlib import Path
from typing import Any, Dict, List

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.resources import get_dataset, get_memory
from services.chat_orchestrator import handle_user_query
from services.constants import DEFAULT_USER_ID
from services.data_model import AnswerPacket, TopBottomResult
from services.visualization_logic import build_result_figure, describe_query, result_to_frame

logger = logging.getLogger(__name__)

class ChatManager:
    """Manages chat interface and interactions"""

    @staticmethod
    def build_response_message(answer_packet: AnswerPacket) -> Dict[str, Any]:
        """Turn an answer packet into a chat message that survives reruns"""
        response_msg = {
            "role": "assistant",
            "content": answer_packet.text,
        }

        if answer_packet.error:
            response_msg["error"] = answer_packet.error

        if answer_packet.parsed_query:
            response_msg["interpretation"] = describe_query(answer_packet.parsed_query)

        result = answer_packet.result
        if result is not None:
            if isinstance(result, TopBottomResult):
                tables = [
                    {"title": f"Top {len(result.top_results)} Results", "rows": result.top_results},
                    {"title": f"Bottom {len(result.bottom_results)} Results", "rows": result.bottom_results},
                ]
            else:
                tables = [{"title": None, "rows": result.results}]
            response_msg["tables"] = [t for t in tables if t["rows"]]

            prefs = get_memory().get_user_preferences(DEFAULT_USER_ID)
            fig = build_result_figure(result) if prefs.get("show_charts", True) else None
            if fig is not None:
                response_msg["visualization"] = json.loads(fig.to_json())

        if answer_packet.related:
            response_msg["related"] = [
                {"id": r.id, "query": r.query, "score": r.relevance_score}
                for r in answer_packet.related
            ]
        return response_msg

    @staticmethod
    def render_message(msg: Dict[str, Any], index: int) -> None:
        """Render one message with its tables, chart and related questions"""
        msg_container = st.container()
        msg_container.markdown(msg["content"])

        if msg.get("interpretation"):
            msg_container.caption(msg["interpretation"])

        if msg.get("error"):
            with msg_container.expander("See error details"):
                st.code(msg["error"])

        for table in msg.get("tables", []):
            if table["title"]:
                msg_container.markdown(f"**{table['title']}**")
            msg_container.dataframe(result_to_frame(table["rows"]), hide_index=True, use_container_width=True)

        if msg.get("visualization"):
            try:
                fig = pio.from_json(json.dumps(msg["visualization"]))
                msg_container.plotly_chart(fig, use_container_width=True)
            except Exception as e:
                logger.error(f"Error displaying visualization: {str(e)}")

        related: List[Dict[str, Any]] = msg.get("related", [])
        if related:
            with msg_container.expander("🔗 Related questions"):
                for r in related:
                    if st.button(f"{r['query']} (score {r['score']})", key=f"related_{index}_{r['id']}"):
                        get_memory().mark_interaction_as_referenced(r["id"])
                        st.session_state.pending_prompt = r["query"]
                        st.rerun()

    @staticmethod
    def display_chat_history() -> None:
        """Display existing chat history"""
        for i, msg in enumerate(st.session_state.messages):
            with st.chat_message(msg["role"]):
                if msg["role"] == "assistant":
                    ChatManager.render_message(msg, i)
                else:
                    st.write(msg["content"])

    @staticmethod
    def handle_user_input(prompt: str) -> None:
        """Process user input and generate response"""
        try:
            # Keep only the last 20 pairs of messages
            if len(st.session_state.messages) >= 40:
                st.session_state.messages = st.session_state.messages[-39:]

            # Add user message to chat and display immediately
            st.session_state.messages.append({"role": "user", "content": prompt})
            with st.chat_message("user"):
                st.write(prompt)

            with st.spinner("Thinking..."):
                answer_packet = handle_user_query(
                    user_query=prompt,
                    dataset=get_dataset(),
                    memory=get_memory(),
                )
                response_msg = ChatManager.build_response_message(answer_packet)
                st.session_state.messages.append(response_msg)

            with st.chat_message("assistant"):
                ChatManager.render_message(response_msg, len(st.session_state.messages) - 1)

        except Exception as e:
            st.error("❌ Error processing your question")
            logger.error(f"Error in chat: {str(e)}")
            with st.expander("See error details"):
                st.exception(e)

    @staticmethod
    def render_chat_interface() -> None:
        """Render the chat interface"""
        st.markdown("### 💬 Ask about your dealers")

        # Display chat history
        ChatManager.display_chat_history()

        # Chat input, or a related question picked from an earlier answer
        prompt = st.chat_input("Top 5 dealers by credit card additions per visit?")
        if not prompt and st.session_state.get("pending_prompt"):
            prompt = st.session_state.pending_prompt
            st.session_state.pending_prompt = None
        if prompt:
            ChatManager.handle_user_input(prompt)

        # Clear chat button
        if st.session_state.messages and st.button("Clear Chat"):
            st.session_state.messages = []
            st.rerun()
