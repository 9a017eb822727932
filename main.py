# ------------------------------------------------------------------
# Project's Testing Entry Point
# Run: python main.py "top 3 dealers by visits"
#      python main.py            (runs the sample questions below)
# Note: Please run the Streamlit app using: streamlit run app/app.py
# ------------------------------------------------------------------

import sys

from services.chat_orchestrator import handle_user_query
from services.data_loader import load_dataset
from services.memory import InteractionMemory
from services.visualization_logic import describe_query, result_to_frame
from services.data_model import TopBottomResult

SAMPLE_QUESTIONS = [
    "top 3 dealers by visits",
    "bottom 5 dealers by order confirmations",
    "ratio of credit card additions to visits",
    "top 2 and bottom 2 by visits",
    "average credit card additions",
    "correlation between visits and order confirmations",
    "show me visits for Northgate",
]

def print_answer(question: str, dataset, memory: InteractionMemory) -> None:
    answer = handle_user_query(question, dataset, memory)

    print("=" * 80)
    print(f"Q: {question}")
    if answer.parsed_query:
        print(describe_query(answer.parsed_query))
    print(answer.text)

    if answer.error:
        print(f"Error: {answer.error}")

    result = answer.result
    if isinstance(result, TopBottomResult):
        print(result_to_frame(result.top_results).to_string(index=False))
        print(result_to_frame(result.bottom_results).to_string(index=False))
    elif result is not None and result.results:
        print(result_to_frame(result.results).to_string(index=False))

    for related in answer.related:
        print(f"  related ({related.relevance_score}): {related.query}")

if __name__ == "__main__":

    dataset = load_dataset()
    memory = InteractionMemory()

    questions = [" ".join(sys.argv[1:])] if len(sys.argv) > 1 else SAMPLE_QUESTIONS
    for question in questions:
        print_answer(question, dataset, memory)

    print("=" * 80)
    print(memory.get_memory_stats())
