"""NPC dialogue sub-machine.

A session walks one NPCDialogue graph. Entering a node adds that node's
relationship change and unlock_info to the running totals; picking a
response adds the response's. Reaching a terminal node (or a missing one)
ends the dialogue and builds the DialogueResult:

    outcome   success if delta >= 10, failure if delta <= -10, else neutral
    effects   outcome effects, overlaid by the last response's effects,
              overlaid by the terminal node's effects; ``relationship`` is
              then replaced by the accumulated delta
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection

from fund_wars.availability import is_response_available
from fund_wars.errors import ChoiceUnavailable, NoActiveChallenge
from fund_wars.models import (
    AutoAdvance,
    DialogueEffects,
    DialogueNode,
    DialogueOutcome,
    DialogueResponse,
    DialogueResult,
    NPCDialogue,
    PlayerStats,
)

logger = logging.getLogger(__name__)

SUCCESS_THRESHOLD = 10
FAILURE_THRESHOLD = -10

ResponseCheck = Callable[[DialogueResponse, PlayerStats, Collection[str]], bool]


def outcome_for(delta: int) -> DialogueOutcome:
    if delta >= SUCCESS_THRESHOLD:
        return "success"
    if delta <= FAILURE_THRESHOLD:
        return "failure"
    return "neutral"


class DialogueSession:
    def __init__(
        self,
        dialogue: NPCDialogue,
        *,
        is_available: ResponseCheck = is_response_available,
    ) -> None:
        self.dialogue = dialogue
        self.history: list[str] = []
        self.relationship_delta = 0
        self.info_gained: list[str] = []
        self.result: DialogueResult | None = None
        self.current_node_id: str | None = None
        self._is_available = is_available
        self._last_response_effects: DialogueEffects | None = None
        self._enter(dialogue.start_node_id)

    @property
    def finished(self) -> bool:
        return self.result is not None

    @property
    def current_node(self) -> DialogueNode | None:
        if self.finished or self.current_node_id is None:
            return None
        return self.dialogue.nodes.get(self.current_node_id)

    def _require_node(self) -> DialogueNode:
        node = self.current_node
        if node is None:
            raise NoActiveChallenge(f"Dialogue {self.dialogue.id!r} has ended")
        return node

    def available_responses(
        self, player_stats: PlayerStats, flags: Collection[str]
    ) -> list[tuple[DialogueResponse, bool]]:
        """Responses of the current node with their availability.

        Unavailable responses marked ``hidden`` are left out.
        """
        node = self.current_node
        if node is None:
            return []
        views = []
        for response in node.responses:
            ok = self._is_available(response, player_stats, flags)
            if not ok and response.hidden:
                continue
            views.append((response, ok))
        return views

    def respond(
        self, response_id: str, player_stats: PlayerStats, flags: Collection[str]
    ) -> DialogueResult | None:
        """Pick a response. Returns the result if this ended the dialogue."""
        node = self._require_node()
        response = node.get_response(response_id)
        if response is None:
            raise ChoiceUnavailable(response_id, f"Not offered at node {node.id!r}")
        if not self._is_available(response, player_stats, flags):
            raise ChoiceUnavailable(response_id, "Requirements not met")
        self._accumulate(response.effects)
        self._last_response_effects = response.effects
        logger.debug("dialogue %s: response %s", self.dialogue.id, response_id)
        self._enter(response.next_node_id)
        return self.result

    def advance(self) -> DialogueResult | None:
        """Follow an auto-advance node. No-op on a node waiting for a response."""
        node = self._require_node()
        flow = node.flow
        if not isinstance(flow, AutoAdvance):
            return None
        self._enter(flow.next)
        return self.result

    def abandon(self) -> DialogueResult:
        """End early: outcome from the delta so far, outcome effects only."""
        if self.finished:
            raise NoActiveChallenge(f"Dialogue {self.dialogue.id!r} has ended")
        logger.debug("dialogue %s abandoned at %s", self.dialogue.id, self.current_node_id)
        return self._finish(None, include_trail=False, abandoned=True)

    def _enter(self, node_id: str) -> None:
        node = self.dialogue.nodes.get(node_id)
        if node is None:
            logger.warning("Dialogue %s: node %r missing, ending", self.dialogue.id, node_id)
            self._finish(None)
            return
        self.current_node_id = node_id
        self.history.append(node_id)
        self._accumulate(node.effects)
        if not node.responses and not node.next_node_id:
            self._finish(node.effects)

    def _accumulate(self, effects: DialogueEffects | None) -> None:
        if effects is None:
            return
        if effects.relationship:
            self.relationship_delta += effects.relationship
        if effects.unlock_info:
            self.info_gained.append(effects.unlock_info)

    def _finish(
        self,
        terminal_effects: DialogueEffects | None,
        *,
        include_trail: bool = True,
        abandoned: bool = False,
    ) -> DialogueResult:
        outcome = outcome_for(self.relationship_delta)
        layers = [getattr(self.dialogue.outcomes, outcome)]
        if include_trail:
            layers += [self._last_response_effects, terminal_effects]
        merged: dict = {}
        for layer in layers:
            if layer is not None:
                merged.update(layer.model_dump(exclude_none=True))
        merged["relationship"] = self.relationship_delta

        self.result = DialogueResult(
            dialogue_id=self.dialogue.id,
            npc_id=self.dialogue.npc_id,
            outcome=outcome,
            effects=DialogueEffects(**merged),
            info_gained=list(self.info_gained),
            history=list(self.history),
            abandoned=abandoned,
        )
        logger.debug(
            "dialogue %s finished: %s (delta %d)", self.dialogue.id, outcome, self.relationship_delta
        )
        return self.result
