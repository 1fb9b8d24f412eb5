"""
Sales assistant: answers questions about pastry sales.
Fetches orders for the asked period, aggregates them, grounds an OpenAI-compatible
chat model on the aggregates and flags answers that fail the plausibility checks.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional

from src.models.sales import DateRange
from src.services.branch_groups import BranchGroupRegistry
from src.services.context_builder import GroundingContextBuilder
from src.services.exceptions import AssistantError, GenerationError
from src.services.response_validator import ResponseValidator
from src.services.sales_aggregator import SalesAggregator
from src.utils.helpers import extract_date_range, normalize_date_range

logger = logging.getLogger(__name__)

PLACEHOLDER_ANSWERS = ("", "undefined", "null", "none")


class SalesAssistant:
    """
    Runs one question end to end: date range -> orders -> aggregates -> prompt ->
    model -> validation. Each call works on fresh data; only the branch registry
    is shared between calls.
    """

    def __init__(
        self,
        branch_groups: Optional[BranchGroupRegistry] = None,
        orders_client=None,
        generate_text: Optional[Callable[[str], str]] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        """
        Args:
            branch_groups: registry; built from the branch listing when omitted.
            orders_client: object with fetch_orders(date_range); OrdersClient when omitted.
            generate_text: prompt -> answer; the OpenAI-compatible client when omitted.
            today: clock for the default date range (tests pin it).
        """
        if orders_client is None:
            from src.models.data_loader import OrdersClient
            orders_client = OrdersClient()
        if branch_groups is None:
            from src.services.branch_groups import build_registry
            branch_groups = build_registry(orders_client)
        self.branch_groups = branch_groups
        self.orders_client = orders_client
        self._generate_text = generate_text
        self._today = today or date.today
        self._client = None

        # Model configuration (settings read the environment)
        from config.settings import CHAT_API_KEY, CHAT_API_BASE, CHAT_MODEL, CHAT_TEMPERATURE, CHAT_MAX_TOKENS
        self.api_key = CHAT_API_KEY
        self.api_base = CHAT_API_BASE
        self.model_name = CHAT_MODEL
        self.temperature = CHAT_TEMPERATURE
        self.max_tokens = CHAT_MAX_TOKENS

        self.aggregator = SalesAggregator(branch_groups)
        self.context_builder = GroundingContextBuilder(branch_groups)
        self.validator = ResponseValidator(branch_groups)

    def _get_client(self):
        """Lazy-load OpenAI client."""
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key, base_url=self.api_base)
        return self._client

    def generate_text(self, prompt: str) -> str:
        """One model call, no retries. Empty or placeholder output is an error."""
        if self._generate_text is not None:
            try:
                text = self._generate_text(prompt)
            except AssistantError:
                raise
            except Exception as e:
                raise GenerationError(f"Text generation failed: {e}") from e
        else:
            if not self.api_key:
                raise GenerationError("Chat API key not configured. Set the CHAT_API_KEY environment variable.")
            from openai import OpenAIError
            try:
                response = self._get_client().chat.completions.create(
                    model=self.model_name,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
                text = response.choices[0].message.content if response.choices else ""
            except OpenAIError as e:
                raise GenerationError(f"Error communicating with the chat model: {e}") from e
        if text is None or text.strip().lower() in PLACEHOLDER_ANSWERS:
            raise GenerationError("Chat model returned an empty answer")
        return text.strip()

    def analyze(self, date_range: DateRange):
        """Aggregated sales for a date range (fetch + aggregate)."""
        raw_orders = self.orders_client.fetch_orders(date_range)
        return self.aggregator.aggregate(raw_orders)

    def answer(self, user_message: str, date_range: Optional[DateRange] = None) -> Dict[str, Any]:
        """
        Answer a question. Raises AssistantError when orders or the model are unavailable.

        Returns:
            {"role": "assistant", "content", "timestamp", "valid", "validation", "date_range"}
        """
        today = self._today()
        if date_range is None:
            date_range = extract_date_range(user_message, today=today)
        normalize_date_range(date_range, today=today, default_days=self.context_builder.min_days)
        logger.info("Question for %s..%s: %s", date_range.start_date, date_range.end_date, user_message)

        # Widen first so the orders fetched cover the window the model is told about
        date_range.widen_to(self.context_builder.min_days)
        result = self.analyze(date_range)
        context = self.context_builder.build_context(result.sales_by_product, result.tiers)
        prompt, effective_range = self.context_builder.build_prompt(context, user_message, date_range, today=today)

        text = self.generate_text(prompt)
        validation = self.validator.check(text, result.sales_by_product, effective_range)
        if not validation.passed:
            logger.warning("Answer failed plausibility checks: %s", validation.to_dict())

        return {
            "role": "assistant",
            "content": text,
            "timestamp": datetime.now().isoformat(),
            "valid": validation.passed,
            "validation": validation.to_dict(),
            "date_range": effective_range.to_dict(),
        }

    def chat(self, user_message: str, date_range: Optional[DateRange] = None) -> Dict[str, Any]:
        """Like answer(), but failures become the static fallback message."""
        try:
            return self.answer(user_message, date_range=date_range)
        except AssistantError as e:
            from config.settings import FALLBACK_MESSAGE
            logger.error("Assistant failed: %s", e.message)
            return {
                "role": "assistant",
                "content": FALLBACK_MESSAGE,
                "timestamp": datetime.now().isoformat(),
                "valid": False,
                "error": e.message,
            }
