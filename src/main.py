"""
Pastry Sales Insights - Entry point.
Run:  python -m src.main
"""

import os
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from dotenv import load_dotenv

# Load environment variables from .env before settings are imported
load_dotenv(os.path.join(ROOT, ".env"))


def main():
    from src.utils.logger import configure_logging
    from src.api.routes import create_app, set_assistant
    from src.services.chatbot_service import SalesAssistant

    logger = configure_logging()
    # Branch groups are built once here and shared by every request
    set_assistant(SalesAssistant())
    app = create_app()
    port = int(os.environ.get("PORT", 5000))

    chat_api_key = os.environ.get("CHAT_API_KEY", "")
    chat_status = "configured" if chat_api_key else "not configured (set CHAT_API_KEY)"

    logger.info("API at http://127.0.0.1:%d", port)
    logger.info("Chat API: %s", chat_status)
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG", "false").lower() == "true")


if __name__ == "__main__":
    main()
