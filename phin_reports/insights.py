"""
Item sales insights.

A short owner-facing summary of what sold. When an Anthropic API key is
configured the text comes from Claude; otherwise, or when that call fails, a
rule-based summary is used. Reports never depend on the model being there.
"""

import logging

import anthropic

logger = logging.getLogger(__name__)

TOP_N = 5
MAX_TOKENS = 400

PROMPT_HEADER = (
    "You are a data analyst for a multi-location Vietnamese coffee shop brand named Phin Cafe.\n"
    "Write a short, friendly insight for the owner based on these stats."
)

PROMPT_FOOTER = (
    "Write 3-5 sentences.\n"
    "Focus on:\n"
    "- What items are driving sales (especially signature drinks like Egg Coffee, Coconut Coffee, Salted Coffee)\n"
    "- Any balance between drinks and food (banh mi, musubi, pastries) if visible\n"
    "- A gentle suggestion for operations or marketing (feature a top drink, check stock for a strong seller).\n"
    "Do NOT talk about missing data or limitations. Sound confident, helpful and business-focused."
)


class AnthropicInsights:
    """Text generation through the Anthropic Messages API."""

    def __init__(self, api_key, model):
        self.model = model
        self._api_key = api_key
        self._client = None

    @property
    def client(self):
        """Lazy initialization of Anthropic client."""
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self._api_key)
        return self._client

    def generate(self, prompt):
        """Model text for `prompt`, or None if the call fails."""
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=MAX_TOKENS,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.AnthropicError as e:
            logger.warning(f"Insights generation failed: {e}")
            return None
        parts = [block.text for block in response.content if getattr(block, "type", None) == "text"]
        text = "".join(parts).strip()
        return text or None


def from_config(config):
    """AnthropicInsights when a key is configured, else None."""
    if not config.anthropic_api_key:
        return None
    return AnthropicInsights(config.anthropic_api_key, config.insights_model)


def _top_items(items, total):
    top = items[:TOP_N]
    top_total = sum(it["total"] for it in top)
    top_pct = (top_total / total * 100) if total > 0 else 0
    return top, top_pct


def fallback_insights(scope_label, date_label, items, total):
    """Deterministic summary built from the numbers alone."""
    if not items:
        return f"No item sales found for {scope_label} on {date_label}."

    top, top_pct = _top_items(items, total)
    lead = top[0]
    listing = "; ".join(
        f"{i}. {it['itemName']} ({it['quantity']} sold, ${it['total']:,.2f})"
        for i, it in enumerate(top, 1)
    )
    return " ".join([
        f"On {date_label} at {scope_label}, estimated item revenue was ${total:,.2f}.",
        f"Your top seller was {lead['itemName']} with {lead['quantity']} sold and ${lead['total']:,.2f} in sales.",
        f"The top {len(top)} items contributed about {top_pct:.1f}% of total item revenue.",
        f"Top items: {listing}.",
    ])


def build_prompt(scope_label, date_label, items, total):
    top, top_pct = _top_items(items, total)
    lines = [
        PROMPT_HEADER,
        "",
        f"Scope: {scope_label}",
        f"Date or Range: {date_label}",
        f"Total item revenue: ${total:,.2f}",
        "",
        "Top items:",
    ]
    lines += [
        f"{i}. {it['itemName']} - qty {it['quantity']}, ${it['total']:,.2f}"
        for i, it in enumerate(top, 1)
    ]
    lines += [
        "",
        f"The top {len(top)} items contribute about {top_pct:.1f}% of revenue.",
        "",
        PROMPT_FOOTER,
    ]
    return "\n".join(lines)


def build_item_insights(scope_label, date_label, items, total, generator=None):
    """
    Insight text for formatted item rows (itemName/quantity/total dicts,
    largest first). Uses `generator` when given, falling back to rules.
    """
    fallback = fallback_insights(scope_label, date_label, items, total)
    if not items or generator is None:
        return fallback
    text = generator.generate(build_prompt(scope_label, date_label, items, total))
    return text or fallback
