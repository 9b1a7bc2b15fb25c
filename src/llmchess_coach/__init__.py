"""
LLM Chess Coach package.

Components:
- session/orchestrator: match state and the turn state machine (human move, advice, bot move)
- advisor/llm_client: advice and follow-up chat over an OpenAI-compatible endpoint
- prompting/move_extractor: coach prompts and "Best Move:" extraction from the advice text
- referee/board_view: python-chess adapter and the board display capability
"""
# Package exports are intentionally minimal; import modules directly as needed.
