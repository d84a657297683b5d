import random
import shutil
from pathlib import Path

import pytest

from fund_wars.content import ContentRegistry
from fund_wars.engine import StoryEngine

TEST_DATA_DIR = Path("data-tests")
CONTENT_DIR = Path(__file__).parent / "presets" / "content"


@pytest.fixture(autouse=True)
def clean_test_data():
    """Wipe data-tests/ before every test."""
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    TEST_DATA_DIR.mkdir()
    yield
    # leave data-tests around after tests for inspection; CI can ignore it


@pytest.fixture
def data_dir() -> Path:
    return TEST_DATA_DIR


@pytest.fixture
def content_data() -> dict:
    """A small story covering every scene flow the engine knows about."""
    return {
        "chapters": [
            {
                "id": "c1",
                "number": 1,
                "title": "Day One",
                "teaser": "Get through the first day.",
                "opening_scene_id": "s_start",
                "ending_scene_ids": ["s_end"],
            },
            {
                "id": "c2",
                "number": 2,
                "title": "Day Two",
                "teaser": "Do it again.",
                "opening_scene_id": "c2_start",
                "requirements": {"completed_chapters": ["c1"]},
            },
        ],
        "scenes": [
            {
                "id": "s_start",
                "chapter_id": "c1",
                "title": "Lobby",
                "type": "narrative",
                "narrative": "You walk in.",
                "speaker": {"id": "sarah", "name": "Sarah Chen"},
                "choices": [
                    {
                        "id": "go_hall",
                        "text": "Head to the hall",
                        "next_scene_id": "s_hall",
                        "effects": {
                            "stats": {"reputation": 5},
                            "set_flags": ["BRAVE"],
                            "relationships": [
                                {"npc_id": "sarah", "change": 25, "memory": "Said hello"}
                            ],
                            "notification": {"title": "Nice", "message": "Off you go"},
                        },
                    },
                    {
                        "id": "need_key",
                        "text": "Use the key",
                        "next_scene_id": "s_hall",
                        "requirements": {"required_flags": ["KEY"]},
                    },
                    {
                        "id": "secret",
                        "text": "Secret door",
                        "next_scene_id": "s_hall",
                        "requirements": {"required_flags": ["KEY"]},
                        "hidden": True,
                    },
                    {
                        "id": "buy",
                        "text": "Buy a coffee",
                        "next_scene_id": "s_hall",
                        "requirements": {"money_cost": 500},
                    },
                    {
                        "id": "rich",
                        "text": "Buy the building",
                        "next_scene_id": "s_hall",
                        "requirements": {"min_stats": {"money": 100000}},
                        "locked_reason": "Too poor",
                    },
                    {
                        "id": "vault",
                        "text": "Try the vault",
                        "next_scene_id": "s_vault",
                        "effects": {"stats": {"stress": 50}},
                    },
                    {
                        "id": "quit",
                        "text": "Walk out",
                        "next_scene_id": "s_dead",
                    },
                    {
                        "id": "finish",
                        "text": "Call it a day",
                        "next_scene_id": "chapter_complete",
                        "effects": {"achievement": "QUICK"},
                    },
                ],
            },
            {
                "id": "s_hall",
                "chapter_id": "c1",
                "title": "Hall",
                "type": "narrative",
                "narrative": "A long hall.",
                "next_scene_id": "s_corridor",
            },
            {
                "id": "s_corridor",
                "chapter_id": "c1",
                "title": "Corridor",
                "type": "narrative",
                "narrative": "Still walking.",
                "next_scene_id": "s_ack",
            },
            {
                "id": "s_ack",
                "chapter_id": "c1",
                "title": "Memo",
                "type": "narrative",
                "narrative": "Read this before going on.",
                "requires_acknowledgment": True,
                "next_scene_id": "s_end",
            },
            {
                "id": "s_end",
                "chapter_id": "c1",
                "title": "Done",
                "type": "chapter_end",
                "narrative": "That's the day.",
            },
            {
                "id": "s_vault",
                "chapter_id": "c1",
                "title": "Vault",
                "type": "narrative",
                "narrative": "Locked tight.",
                "requirements": {"required_flags": ["VAULT_CODE"]},
                "next_scene_id": "s_end",
            },
            {
                "id": "s_dead",
                "chapter_id": "c1",
                "title": "Gone",
                "type": "outcome",
                "narrative": "You quit.",
            },
            {
                "id": "loop_a",
                "chapter_id": "c1",
                "title": "Loop A",
                "type": "narrative",
                "narrative": "Round",
                "next_scene_id": "loop_b",
            },
            {
                "id": "loop_b",
                "chapter_id": "c1",
                "title": "Loop B",
                "type": "narrative",
                "narrative": "and round",
                "next_scene_id": "loop_a",
            },
            {
                "id": "c2_start",
                "chapter_id": "c2",
                "title": "Back again",
                "type": "narrative",
                "narrative": "Morning.",
                "choices": [
                    {"id": "wrap", "text": "Wrap up", "next_scene_id": "chapter_complete"},
                ],
            },
        ],
        "puzzles": [
            {
                "id": "p_easy",
                "category": "basics",
                "difficulty": "EASY",
                "question": "What does LBO stand for?",
                "options": [
                    {"id": "a", "text": "Leveraged buyout", "is_correct": True},
                    {"id": "b", "text": "Large bank order"},
                ],
                "explanation": "Debt-funded acquisition.",
                "time_limit": 30,
                "reward": {"reputation": 3, "score": 100, "cash": 250},
                "penalty": {"reputation": -2, "stress": 5},
            },
            {
                "id": "p_medium",
                "category": "valuation",
                "difficulty": "MEDIUM",
                "question": "EV equals?",
                "options": [
                    {"id": "a", "text": "Equity + net debt", "is_correct": True},
                    {"id": "b", "text": "Equity - debt"},
                ],
                "explanation": "Enterprise value.",
                "time_limit": 45,
                "reward": {"financial_engineering": 2, "score": 200},
                "penalty": {"stress": 8},
            },
            {
                "id": "p_hard",
                "category": "valuation",
                "difficulty": "HARD",
                "question": "Which IRR is higher?",
                "options": [
                    {"id": "a", "text": "The shorter hold", "is_correct": True},
                    {"id": "b", "text": "The longer hold"},
                ],
                "explanation": "Time value.",
                "time_limit": 60,
                "reward": {"reputation": 5, "score": 300},
                "penalty": {"reputation": -5},
            },
        ],
        "dialogues": [
            {
                "id": "d_mentor",
                "npc_id": "sarah",
                "npc_name": "Sarah Chen",
                "npc_role": "Senior Associate",
                "trigger_condition": {"week_range": [2, 6]},
                "start_node_id": "start",
                "nodes": {
                    "start": {
                        "id": "start",
                        "speaker": "sarah",
                        "text": "Got a minute?",
                        "responses": [
                            {
                                "id": "r_warm",
                                "text": "Always",
                                "next_node_id": "warm",
                                "effects": {"relationship": 6},
                            },
                            {
                                "id": "r_cold",
                                "text": "Not really",
                                "next_node_id": "cold",
                                "effects": {"relationship": -12},
                            },
                            {
                                "id": "r_smart",
                                "text": "Let me walk you through the model",
                                "next_node_id": "warm",
                                "requirements": {"min_financial_engineering": 50},
                            },
                            {
                                "id": "r_secret",
                                "text": "I know about the land",
                                "next_node_id": "warm",
                                "requirements": {"required_flags": ["SECRET"]},
                                "hidden": True,
                            },
                        ],
                    },
                    "warm": {
                        "id": "warm",
                        "speaker": "sarah",
                        "text": "Here's a tip.",
                        "effects": {"relationship": 4, "unlock_info": "Check the appendix"},
                        "next_node_id": "warm_end",
                    },
                    "warm_end": {
                        "id": "warm_end",
                        "speaker": "sarah",
                        "text": "Good luck.",
                        "effects": {"reputation": 2},
                    },
                    "cold": {
                        "id": "cold",
                        "speaker": "sarah",
                        "text": "Suit yourself.",
                        "effects": {"stress": 5},
                    },
                },
                "outcomes": {
                    "success": {"reputation": 5, "stress": -3},
                    "failure": {"reputation": -5, "stress": 10},
                    "neutral": {"stress": 1},
                },
            },
            {
                "id": "d_rival",
                "npc_id": "hunter",
                "npc_name": "Hunter",
                "trigger_condition": {"week_range": [1, 20], "required_flags": ["RIVAL"]},
                "start_node_id": "only",
                "nodes": {
                    "only": {"id": "only", "speaker": "hunter", "text": "Watch your back."},
                },
            },
        ],
    }


@pytest.fixture
def registry(content_data) -> ContentRegistry:
    return ContentRegistry.from_dict(content_data)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def engine(registry) -> StoryEngine:
    return StoryEngine(registry)


@pytest.fixture
def playing(engine) -> StoryEngine:
    """An engine with a fresh game sitting in the first chapter's opening scene."""
    engine.start_new_game("Alex")
    engine.start_chapter("c1")
    return engine


@pytest.fixture
def client(data_dir):
    """API client over the bundled story content."""
    from fastapi.testclient import TestClient

    from backend.app import create_app

    app = create_app(data_dir=data_dir, content_dir=CONTENT_DIR, rng=random.Random(7))
    with TestClient(app) as c:
        yield c
