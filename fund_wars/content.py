"""Content registry: read-only lookup of chapters, scenes, puzzles and dialogues.

Content is supplied as flat JSON tables, one file per kind:

    {content_dir}/
      chapters.json    ← list of Chapter objects
      scenes.json      ← list of Scene objects
      puzzles.json     ← list of Puzzle objects
      dialogues.json   ← list of NPCDialogue objects

Missing files are treated as empty tables. The registry is built once and
checked for referential integrity up front: every scene/node reference must
resolve, so a broken table fails at startup with a ContentError rather than
as a NotFound halfway through a chapter.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from fund_wars.errors import (
    ChapterNotFound,
    ContentError,
    DialogueNotFound,
    PuzzleNotFound,
    SceneNotFound,
)
from fund_wars.models import CHAPTER_COMPLETE, Chapter, NPCDialogue, Puzzle, Scene

logger = logging.getLogger(__name__)


class ContentRegistry:
    def __init__(
        self,
        chapters: Iterable[Chapter] = (),
        scenes: Iterable[Scene] = (),
        puzzles: Iterable[Puzzle] = (),
        dialogues: Iterable[NPCDialogue] = (),
    ) -> None:
        problems: list[str] = []
        self._chapters = MappingProxyType(_index(chapters, "chapter", problems))
        self._scenes = MappingProxyType(_index(scenes, "scene", problems))
        self._puzzles = MappingProxyType(_index(puzzles, "puzzle", problems))
        self._dialogues = MappingProxyType(_index(dialogues, "dialogue", problems))
        problems.extend(self._check_references())
        if problems:
            raise ContentError(problems)

        self._chapter_order = tuple(
            sorted(self._chapters.values(), key=lambda c: (c.number, c.id))
        )
        by_chapter: dict[str, list[Scene]] = {}
        for scene in self._scenes.values():
            if scene.chapter_id:
                by_chapter.setdefault(scene.chapter_id, []).append(scene)
        self._scenes_by_chapter = MappingProxyType(
            {k: tuple(v) for k, v in by_chapter.items()}
        )
        logger.debug(
            "content registry built: %d chapters, %d scenes, %d puzzles, %d dialogues",
            len(self._chapters), len(self._scenes), len(self._puzzles), len(self._dialogues),
        )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ContentRegistry:
        """Build from raw tables keyed "chapters", "scenes", "puzzles", "dialogues"."""
        return cls(
            chapters=[Chapter.model_validate(c) for c in data.get("chapters", [])],
            scenes=[Scene.model_validate(s) for s in data.get("scenes", [])],
            puzzles=[Puzzle.model_validate(p) for p in data.get("puzzles", [])],
            dialogues=[NPCDialogue.model_validate(d) for d in data.get("dialogues", [])],
        )

    @classmethod
    def from_directory(cls, path: Path) -> ContentRegistry:
        data: dict[str, Any] = {}
        for kind in ("chapters", "scenes", "puzzles", "dialogues"):
            file = path / f"{kind}.json"
            if file.is_file():
                data[kind] = json.loads(file.read_text())
            else:
                logger.debug("no %s table at %s", kind, file)
        return cls.from_dict(data)

    def _check_references(self) -> list[str]:
        problems: list[str] = []

        for chapter in self._chapters.values():
            if chapter.opening_scene_id not in self._scenes:
                problems.append(
                    f"chapter {chapter.id!r}: opening scene {chapter.opening_scene_id!r} missing"
                )
            for scene_id in chapter.ending_scene_ids:
                if scene_id not in self._scenes:
                    problems.append(f"chapter {chapter.id!r}: ending scene {scene_id!r} missing")
            if chapter.requirements:
                for required in chapter.requirements.completed_chapters:
                    if required not in self._chapters:
                        problems.append(
                            f"chapter {chapter.id!r}: requires unknown chapter {required!r}"
                        )

        for scene in self._scenes.values():
            if scene.chapter_id and scene.chapter_id not in self._chapters:
                problems.append(f"scene {scene.id!r}: unknown chapter {scene.chapter_id!r}")
            if scene.next_scene_id and scene.next_scene_id not in self._scenes:
                problems.append(f"scene {scene.id!r}: next scene {scene.next_scene_id!r} missing")
            seen: set[str] = set()
            for choice in scene.choices:
                if choice.id in seen:
                    problems.append(f"scene {scene.id!r}: duplicate choice id {choice.id!r}")
                seen.add(choice.id)
                target = choice.next_scene_id
                if target != CHAPTER_COMPLETE and target not in self._scenes:
                    problems.append(
                        f"scene {scene.id!r}: choice {choice.id!r} targets missing scene {target!r}"
                    )

        for dialogue in self._dialogues.values():
            nodes = dialogue.nodes
            if dialogue.start_node_id not in nodes:
                problems.append(
                    f"dialogue {dialogue.id!r}: start node {dialogue.start_node_id!r} missing"
                )
            for key, node in nodes.items():
                if key != node.id:
                    problems.append(f"dialogue {dialogue.id!r}: node key {key!r} != id {node.id!r}")
                targets = [r.next_node_id for r in node.responses]
                if node.next_node_id:
                    targets.append(node.next_node_id)
                for target in targets:
                    if target not in nodes:
                        problems.append(
                            f"dialogue {dialogue.id!r}: node {node.id!r} targets missing node {target!r}"
                        )

        return problems

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_chapter(self, chapter_id: str) -> Chapter:
        try:
            return self._chapters[chapter_id]
        except KeyError:
            raise ChapterNotFound(chapter_id) from None

    def get_scene(self, scene_id: str) -> Scene:
        try:
            return self._scenes[scene_id]
        except KeyError:
            raise SceneNotFound(scene_id) from None

    def get_puzzle(self, puzzle_id: str) -> Puzzle:
        try:
            return self._puzzles[puzzle_id]
        except KeyError:
            raise PuzzleNotFound(puzzle_id) from None

    def get_dialogue(self, dialogue_id: str) -> NPCDialogue:
        try:
            return self._dialogues[dialogue_id]
        except KeyError:
            raise DialogueNotFound(dialogue_id) from None

    def has_scene(self, scene_id: str) -> bool:
        return scene_id in self._scenes

    def list_chapters_in_order(self) -> tuple[Chapter, ...]:
        return self._chapter_order

    @property
    def entry_chapter(self) -> Chapter | None:
        """The lowest-numbered chapter; always playable."""
        return self._chapter_order[0] if self._chapter_order else None

    def scenes_for_chapter(self, chapter_id: str) -> tuple[Scene, ...]:
        return self._scenes_by_chapter.get(chapter_id, ())

    @property
    def puzzles(self) -> tuple[Puzzle, ...]:
        return tuple(self._puzzles.values())

    @property
    def dialogues(self) -> tuple[NPCDialogue, ...]:
        return tuple(self._dialogues.values())

    def get_dialogues_by_npc(self, npc_id: str) -> list[NPCDialogue]:
        return [d for d in self._dialogues.values() if d.npc_id == npc_id]

    def npc_names(self) -> dict[str, str]:
        """Display names for every NPC the content mentions, by npc id."""
        names: dict[str, str] = {}
        for scene in self._scenes.values():
            if scene.speaker:
                names.setdefault(scene.speaker.id, scene.speaker.name)
        for dialogue in self._dialogues.values():
            names[dialogue.npc_id] = dialogue.npc_name
        return names


def _index(items: Iterable[Any], kind: str, problems: list[str]) -> dict[str, Any]:
    index: dict[str, Any] = {}
    for item in items:
        if item.id in index:
            problems.append(f"duplicate {kind} id {item.id!r}")
            continue
        index[item.id] = item
    return index
