"""
Play one coached match in the terminal.

Commands at the prompt:
  e2e4 | e2 e4     move a piece (queen promotion is implicit)
  ? <question>     ask the coach a follow-up about the current analysis
  bot              ask the bot again after it failed to move
  new              start a new game with the same settings
  quit             leave
"""
import argparse
import asyncio
import logging

from src.llmchess_coach.advisor import AdvisorGateway
from src.llmchess_coach.board_view import TerminalBoardView
from src.llmchess_coach.config import SETTINGS
from src.llmchess_coach.errors import ChatBusy, NoActiveContext
from src.llmchess_coach.orchestrator import TurnOrchestrator, TurnState
from src.llmchess_coach.session import parse_mode, parse_side


def parse_drop(line: str) -> tuple[str, str] | None:
    """Split 'e2e4', 'e2 e4' or 'e2-e4' into squares; None if it doesn't look like a drop."""
    compact = line.replace(" ", "").replace("-", "").lower()
    if len(compact) not in (4, 5):
        return None
    return compact[:2], compact[2:4]


def print_new_turns(coach: TurnOrchestrator, seen: int) -> int:
    turns = coach.advisor.turns
    if len(turns) < seen:
        seen = 0  # new cycle cleared the conversation
    for turn in turns[seen:]:
        who = "You" if turn.speaker == "human" else "Coach"
        print(f"\n[{who}] {turn.text}")
    return len(turns)


async def play(coach: TurnOrchestrator, mode: str, side: str) -> None:
    log = logging.getLogger("play_one")
    coach.start_match(mode, side)
    seen = 0
    while True:
        await coach.drain()
        seen = print_new_turns(coach, seen)
        print(f"\n{coach.session.status()}  [{coach.state.value}]")
        line = (await asyncio.to_thread(input, "> ")).strip()
        if not line:
            continue
        if line in ("quit", "exit"):
            break
        if line == "new":
            coach.end_match()
            coach.start_match(mode, side)
            seen = 0
            continue
        if line == "bot":
            if not coach.retry_bot_move():
                print("It is not the bot's turn.")
            continue
        if line.startswith("?"):
            try:
                await coach.send_chat(line[1:])
            except (NoActiveContext, ChatBusy, ValueError) as exc:
                print(f"Chat unavailable: {exc}")
            continue
        drop = parse_drop(line)
        if drop is None or coach.handle_drop(*drop) == "snapback":
            if coach.state == TurnState.AWAITING_HUMAN_MOVE:
                print("Illegal move. Try again.")
            else:
                print("Wait for your turn.")
            continue
        log.debug("Accepted %s-%s", *drop)
    coach.end_match()


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Play one match against (or with) the chess coach")
    ap.add_argument("--mode", choices=["pve", "pvp"], default="pve", help="pve: play the coach; pvp: two humans with commentary")
    ap.add_argument("--side", choices=["white", "black"], default="white", help="Human side in pve")
    ap.add_argument("--model", default=None, help="Model name (overrides LLMCHESS_COACH_MODEL)")
    ap.add_argument("--bot-delay", type=float, default=None, help="Seconds to wait before each bot move")
    ap.add_argument("--no-opening-advice", action="store_true", help="Skip the advice request at match start")
    ap.add_argument("--unicode", action="store_true", help="Draw the board with unicode pieces")
    ap.add_argument("--log-level", default=None, help="Python logging level (e.g., INFO, DEBUG)")
    args = ap.parse_args()

    log_level = (args.log_level or SETTINGS.log_level).upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    coach = TurnOrchestrator(
        advisor=AdvisorGateway(model=args.model),
        board=TerminalBoardView(unicode=args.unicode),
        bot_delay_s=args.bot_delay,
        advise_on_start=False if args.no_opening_advice else None,
    )
    asyncio.run(play(coach, parse_mode(args.mode), parse_side(args.side)))
