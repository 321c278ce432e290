"""Bounded tool-calling agent that finds a Swedish org number and financials."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable

from sales_recon.analysis.llm_client import AssistantTurn, ChatModel, ToolCall
from sales_recon.models import OrgLookupResult, SearchOptions, SearchResponse
from sales_recon.validation import hostname_of

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 5
TOOL_CHOICE_THRESHOLD = 4  # from this iteration on, tools are disabled
OBSERVATION_LIMIT = 3000
SEARCH_MAX_RESULTS = 5

ORG_NUMBER_PATTERN = re.compile(r"\b(5\d{5}-?\d{4})\b")

NO_RESULTS = "No results found"
SEARCH_FAILED = "Search failed"

SEARCH_TOOL_NAME = "search_web"
SEARCH_TOOL = {
    "type": "function",
    "function": {
        "name": SEARCH_TOOL_NAME,
        "description": (
            "Search the web for specific information about Swedish companies. Use this to "
            "find org numbers and financial data from Allabolag, Ratsit, Bolagsverket, etc."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The search query to execute"},
            },
            "required": ["query"],
        },
    },
}

SearchFn = Callable[[str, SearchOptions], Awaitable[SearchResponse]]


def is_swedish_company(url: str) -> bool:
    return hostname_of(url).endswith(".se")


def extract_org_number(text: str) -> str:
    match = ORG_NUMBER_PATTERN.search(text or "")
    return match.group(1) if match else ""


def _system_prompt(company_name: str, url: str, rounds: int) -> str:
    return f"""You are a Swedish company research assistant.

You MUST complete BOTH tasks below. Do not stop after finding the org number.

TASK 1: Find the organisationsnummer (org number)
- Search: "{url} organisationsnummer" or "{company_name} AB org nummer"
- Sources: Allabolag, Bolagsverket, Ratsit, hitta.se
- Format: 5XXXXX-XXXX or 5XXXXXXXXX

TASK 2: With the org number, search for financial data
- Search: "[org number] Allabolag" and "[org number] bokslut omsättning"
- Find: omsättning (revenue), resultat (profit), soliditet, tillgångar

You have up to {rounds} rounds of search_web calls, and a round may run several queries.
Stop when you have both the org number and financial data."""


def _user_prompt(company_name: str, url: str) -> str:
    return (
        f"Find BOTH org number AND financial data (omsättning, resultat) for: "
        f"{company_name} ({url})\n\n"
        "Don't finish until you've searched for financials with the org number."
    )


class LookupPhase(str, Enum):
    ITERATE = "iterate"
    TOOL_CALL_REQUESTED = "tool_call_requested"
    FINAL_ANSWER = "final_answer"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class LookupState:
    """One immutable snapshot of the agent loop."""
    phase: LookupPhase
    iteration: int
    transcript: tuple[dict[str, Any], ...]
    pending_calls: tuple[ToolCall, ...] = ()
    final_text: str = ""

    @property
    def done(self) -> bool:
        return self.phase in (LookupPhase.FINAL_ANSWER, LookupPhase.EXHAUSTED)


class OrgNumberLookup:
    """Drive a chat model through at most ``max_iterations`` model calls.

    Iterations below ``tool_choice_threshold`` let the model choose whether
    to search; later ones force a plain answer. Running out of iterations
    is a normal outcome and yields empty fields.
    """

    def __init__(
        self,
        model: ChatModel,
        search: SearchFn,
        max_iterations: int = MAX_ITERATIONS,
        tool_choice_threshold: int = TOOL_CHOICE_THRESHOLD,
        observation_limit: int = OBSERVATION_LIMIT,
    ):
        self.model = model
        self.search = search
        self.max_iterations = max_iterations
        self.tool_choice_threshold = tool_choice_threshold
        self.observation_limit = observation_limit

    def tool_choice_for(self, iteration: int) -> str:
        return "auto" if iteration < self.tool_choice_threshold else "none"

    @property
    def search_rounds(self) -> int:
        """Model turns in which searching is allowed."""
        return max(0, min(self.tool_choice_threshold - 1, self.max_iterations))

    async def run(self, company_name: str, url: str) -> OrgLookupResult:
        logger.info("Registry lookup for Swedish company: %s", company_name)
        state = LookupState(
            phase=LookupPhase.ITERATE,
            iteration=1,
            transcript=(
                {
                    "role": "system",
                    "content": _system_prompt(company_name, url, self.search_rounds),
                },
                {"role": "user", "content": _user_prompt(company_name, url)},
            ),
        )

        while not state.done:
            state = await self.step(state)

        if state.phase is LookupPhase.EXHAUSTED:
            logger.info(
                "Registry lookup for %s stopped after %d iterations without an answer",
                company_name, self.max_iterations,
            )
            return OrgLookupResult(iterations=self.max_iterations, exhausted=True)

        org_number = extract_org_number(state.final_text)
        logger.info(
            "Registry lookup complete. Org number: %s, financial data: %d chars",
            org_number or "not found", len(state.final_text),
        )
        return OrgLookupResult(
            org_number=org_number,
            financial_data=state.final_text,
            iterations=state.iteration,
        )

    async def step(self, state: LookupState) -> LookupState:
        """Advance the loop by one transition."""
        if state.phase is LookupPhase.ITERATE:
            if state.iteration > self.max_iterations:
                return replace(state, phase=LookupPhase.EXHAUSTED)

            turn: AssistantTurn = await self.model.chat(
                list(state.transcript), [SEARCH_TOOL], self.tool_choice_for(state.iteration),
            )
            transcript = state.transcript + (turn.to_message(),)
            if turn.tool_calls:
                return replace(
                    state,
                    phase=LookupPhase.TOOL_CALL_REQUESTED,
                    transcript=transcript,
                    pending_calls=turn.tool_calls,
                )
            return replace(
                state, phase=LookupPhase.FINAL_ANSWER, transcript=transcript,
                final_text=turn.content,
            )

        if state.phase is LookupPhase.TOOL_CALL_REQUESTED:
            observations = []
            for call in state.pending_calls:
                observations.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": await self._observe(call),
                })
            return replace(
                state,
                phase=LookupPhase.ITERATE,
                iteration=state.iteration + 1,
                transcript=state.transcript + tuple(observations),
                pending_calls=(),
            )

        return state

    async def _observe(self, call: ToolCall) -> str:
        if call.name != SEARCH_TOOL_NAME:
            logger.warning("Model requested unknown tool %r", call.name)
            return f"Error: unknown tool '{call.name}'"

        try:
            args = json.loads(call.arguments or "{}")
            query = args["query"]
            if not isinstance(query, str) or not query.strip():
                raise ValueError("query must be a non-empty string")
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed %s arguments %r: %s", call.name, call.arguments, e)
            return "Error: invalid arguments, expected {\"query\": \"...\"}"

        logger.info("Model requested search: %r", query)
        try:
            response = await self.search(
                query, SearchOptions(max_results=SEARCH_MAX_RESULTS, search_depth="advanced"),
            )
        except Exception as e:
            logger.warning("Lookup search %r failed: %s", query, e)
            return SEARCH_FAILED

        text = "\n\n".join(f"{r.title}\n{r.content}" for r in response.results)
        return (text or NO_RESULTS)[: self.observation_limit]
