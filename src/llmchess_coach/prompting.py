"""
Prompt builders and config for the coach.

Callers supply a persona, an advice template and a chat persona; the template
placeholders are substituted per request.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

DEFAULT_COACH_SYSTEM = "You are a world-class chess grandmaster and a friendly, encouraging coach."

DEFAULT_ADVICE_TEMPLATE = """Analyze the following chess position.

Current board state (FEN): {FEN}
Game history (PGN): {PGN}
The last move played was: {LAST_MOVE}

Your task is to:
1. Suggest the best next move for the current player. Provide the move in Standard Algebraic Notation (e.g., "e4", "Nf3", "Bxg7").
2. Explain the reasoning behind your suggestion in 2-3 concise, beginner-friendly sentences.
3. Focus on the strategic goals, tactical opportunities, or defensive necessities.
4. Keep your tone positive and educational.

Format your response clearly, like this:
**Best Move:** [Your suggested move]

**Reasoning:** [Your explanation]"""

DEFAULT_CHAT_SYSTEM = (
    "You are a world-class chess grandmaster and a friendly, encouraging coach. "
    "The user is asking follow-up questions about the analysis you just provided. "
    "Keep your answers concise and helpful."
)

# Seed user turn for the follow-up conversation
CHAT_SEED_TEMPLATE = "Analyze this chess position (FEN): {FEN}"


@dataclass
class PromptConfig:
    """Configuration for shaping advice and follow-up prompts."""

    system_instructions: str = DEFAULT_COACH_SYSTEM
    template: str = DEFAULT_ADVICE_TEMPLATE
    chat_system_instructions: str = DEFAULT_CHAT_SYSTEM


def render_custom_prompt(template: str, values: Dict[str, str]) -> str:
    """Replace known placeholders in the template. Unknown tokens are left intact."""
    rendered = template or ""
    for key, val in values.items():
        rendered = rendered.replace(f"{{{key}}}", val)
    return rendered


def build_advice_messages(fen: str, pgn: str, last_move: str, cfg: PromptConfig) -> List[Dict[str, str]]:
    values = {
        "FEN": fen,
        "PGN": pgn or "(none)",
        "LAST_MOVE": last_move or "none",
    }
    return [
        {"role": "system", "content": cfg.system_instructions},
        {"role": "user", "content": render_custom_prompt(cfg.template, values)},
    ]


def build_chat_seed(fen: str, advice: str, cfg: PromptConfig) -> List[Dict[str, str]]:
    """System framing plus the analysis exchange the follow-up thread continues from."""
    return [
        {"role": "system", "content": cfg.chat_system_instructions},
        {"role": "user", "content": render_custom_prompt(CHAT_SEED_TEMPLATE, {"FEN": fen})},
        {"role": "assistant", "content": advice},
    ]
