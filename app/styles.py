"""CSS styles for the application"""

STYLES = """
    /* General button styling */
    .stButton > button {
        background-color: #4B286D;
        color: white;
        padding: 8px 16px;
        border-radius: 4px;
        border: none;
    }
    .stButton > button:hover {
        background-color: #66cc00;
    }

    /* Memory entry styling */
    .memory-entry {
        background-color: #f8f9fa;
        border-left: 4px solid #4B286D;
        padding: 12px;
        margin-bottom: 12px;
        border-radius: 4px;
    }

    .memory-timestamp {
        color: #666;
        font-size: 0.85em;
    }

    .memory-question {
        font-weight: bold;
        margin: 8px 0;
    }

    .memory-interpretation {
        color: #444;
        font-size: 0.85em;
        white-space: pre-wrap;
    }

    .memory-referenced {
        color: #2B8000;
        font-size: 0.85em;
        margin-top: 6px;
    }
"""
