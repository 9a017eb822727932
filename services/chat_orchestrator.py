"""
chat_orchestrator.py
High-level orchestrator for answering dealer analytics questions.
"""

import logging
from typing import Any, Optional

from services.constants import (
    LOG_LEVEL,
    EMPTY_QUERY_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    MAX_QUERY_LENGTH,
    QUERY_TOO_LONG_MESSAGE,
)
from services.data_model import AnswerPacket
from services.memory import InteractionMemory
from services.nlq import parse_query
from services.query_executor import execute_query
from services.visualization_logic import summarize_result

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def handle_user_query(user_query: str, dataset: Any, memory: InteractionMemory,
                      user_id: Optional[str] = None) -> AnswerPacket:
    """
        High-level entrypoint for query processing:
        0. Reject blank or overlong questions
        1. Look up related past questions (before this one is stored)
        2. Parse the question into a structured query
        3. Execute it against the dataset
        4. Store the interaction and summarize the result
    """
    if not user_query or not user_query.strip():
        return AnswerPacket(text=EMPTY_QUERY_MESSAGE, status=400, error=EMPTY_QUERY_MESSAGE)

    user_query = user_query.strip()
    if len(user_query) > MAX_QUERY_LENGTH:
        logger.warning(f"Rejected query of {len(user_query)} characters (max {MAX_QUERY_LENGTH})")
        return AnswerPacket(text=QUERY_TOO_LONG_MESSAGE, status=400, error=QUERY_TOO_LONG_MESSAGE)

    logger.info(f"Received query: {user_query}")

    try:
        related = memory.find_related_interactions(user_query, user_id=user_id)

        parsed_query = parse_query(user_query)
        result = execute_query(parsed_query, dataset)

        interaction_id = memory.store_interaction(user_query, parsed_query, result, user_id=user_id)

        return AnswerPacket(
            text=summarize_result(result),
            parsed_query=parsed_query,
            result=result,
            related=related,
            interaction_id=interaction_id,
        )
    except Exception as e:
        logger.error(f"Error processing query '{user_query}': {e}", exc_info=True)
        return AnswerPacket(text=GENERIC_ERROR_MESSAGE, status=500, error=str(e))
