"""Tests for conversation resolution and the chat turn flow."""

import asyncio
import uuid

import pytest

from tests.conftest import FakeProvider, seed_user
from saber.core.errors import GenerationError, NotFound, StorageError, ValidationError
from saber.services.ai_settings import AiSettings
from saber.services.orchestrator import TurnOrchestrator, build_system_prompt
from saber.services.repository import ConversationRepository
from saber.services.resolver import ConversationResolver


@pytest.fixture
def repo(session):
    return ConversationRepository(session)


def _turn(repo, provider, user_id, message, conversation_id=None, settings=None):
    orchestrator = TurnOrchestrator(repo, provider)
    return asyncio.run(orchestrator.handle_turn(user_id, message, conversation_id, settings))


def test_context_window_limits_history(repo, provider):
    uid = seed_user()
    conv = repo.create_conversation(uid, "Cells")
    repo.append_exchange(conv.id, "q1", "a1")
    repo.append_exchange(conv.id, "q2", "a2")

    _turn(repo, provider, uid, "q3", conv.id, {"contextMemory": 2})

    history = provider.chat_calls[0]["history"]
    assert [(h.role, h.message) for h in history] == [("USER", "q2"), ("CHATBOT", "a2")]
    assert provider.chat_calls[0]["message"] == "q3"


def test_no_prior_messages_sends_no_history(repo, provider):
    uid = seed_user()
    _turn(repo, provider, uid, "hello")
    assert provider.chat_calls[0]["history"] is None


def test_zero_context_memory_sends_no_history(repo, provider):
    uid = seed_user()
    conv = repo.create_conversation(uid, "Cells")
    repo.append_exchange(conv.id, "q1", "a1")
    _turn(repo, provider, uid, "q2", conv.id, {"contextMemory": 0})
    assert provider.chat_calls[0]["history"] is None


def test_exchange_appended_in_order(repo, provider):
    uid = seed_user()
    conv = repo.create_conversation(uid, "Cells")
    repo.append_exchange(conv.id, "q1", "a1")

    provider.reply = "a2"
    result = _turn(repo, provider, uid, "  q2  ", conv.id)

    messages = repo.list_messages(uid, conv.id)
    assert [(m.role, m.content) for m in messages] == [
        ("user", "q1"),
        ("assistant", "a1"),
        ("user", "q2"),
        ("assistant", "a2"),
    ]
    assert messages[-1].settings == result.applied_settings.to_json()


def test_empty_message_makes_no_calls(repo, provider):
    uid = seed_user()
    for message in ["", "  ", None]:
        with pytest.raises(ValidationError):
            _turn(repo, provider, uid, message)
    assert provider.calls == 0
    assert repo.list_conversations(uid) == []


def test_other_users_conversation_not_found(repo, provider):
    ana = seed_user()
    bob = seed_user("Bob", "bob@example.com")
    conv = repo.create_conversation(bob, "Bob's", title_claimed=False)

    with pytest.raises(NotFound):
        _turn(repo, provider, ana, "hi", conv.id)
    assert provider.calls == 0
    assert repo.get_conversation(bob, conv.id).title == "Bob's"


def test_generation_error_propagates_without_writes(repo, provider):
    uid = seed_user()
    provider.fail_chat = True
    with pytest.raises(GenerationError):
        _turn(repo, provider, uid, "hello")
    (conv,) = repo.list_conversations(uid)
    assert repo.list_messages(uid, conv.id) == []


def test_storage_error_stops_before_generation(repo, provider):
    class FailingRepository(ConversationRepository):
        def list_messages(self, user_id, conversation_id):
            raise StorageError()

    uid = seed_user()
    with pytest.raises(StorageError):
        _turn(FailingRepository(repo.session), provider, uid, "hello", uuid.uuid4())
    assert provider.calls == 0


def test_unknown_personality_uses_balanced():
    assert build_system_prompt("pirate") == build_system_prompt("balanced")
    assert "SABER" in build_system_prompt("friendly")
    assert "friendly" in build_system_prompt("friendly")


def test_resolve_new_conversation(repo, provider):
    uid = seed_user()
    resolver = ConversationResolver(repo, provider)
    resolution = asyncio.run(resolver.resolve(uid, None, "Explain photosynthesis", AiSettings()))
    assert resolution.is_first_message
    assert resolution.title == "Photosynthesis Basics"
    assert repo.get_conversation(uid, resolution.conversation_id).title == "Photosynthesis Basics"


def test_resolve_empty_conversation_claims_title(repo, provider):
    uid = seed_user()
    conv = repo.create_conversation(uid, title_claimed=False)
    resolver = ConversationResolver(repo, provider)
    resolution = asyncio.run(resolver.resolve(uid, conv.id, "Explain photosynthesis", AiSettings()))
    assert resolution.is_first_message
    assert resolution.title == "Photosynthesis Basics"
    assert repo.get_conversation(uid, conv.id).title == "Photosynthesis Basics"


def test_resolve_keeps_concurrent_winner_title(repo, provider):
    uid = seed_user()
    conv = repo.create_conversation(uid, title_claimed=False)
    assert repo.claim_title(uid, conv.id, "Winner Title")
    assert not repo.claim_title(uid, conv.id, "Loser Title")

    resolver = ConversationResolver(repo, provider)
    resolution = asyncio.run(resolver.resolve(uid, conv.id, "Explain photosynthesis", AiSettings()))
    assert resolution.is_first_message
    assert resolution.title == "Winner Title"
    assert repo.get_conversation(uid, conv.id).title == "Winner Title"


def test_resolve_existing_conversation(repo, provider):
    uid = seed_user()
    conv = repo.create_conversation(uid, "Cells")
    repo.append_exchange(conv.id, "q1", "a1")
    resolver = ConversationResolver(repo, provider)
    resolution = asyncio.run(resolver.resolve(uid, conv.id, "q2", AiSettings()))
    assert not resolution.is_first_message
    assert resolution.title == "Cells"
    assert provider.calls == 0


def test_turn_result_json(repo):
    uid = seed_user()
    result = _turn(repo, FakeProvider(reply="Sure"), uid, "hello")
    data = result.to_json()
    assert data["response"] == "Sure"
    assert data["conversationId"] == str(result.conversation_id)
    assert data["isFirstMessage"] is True


def test_retry_after_failed_first_turn_retitles(repo, provider):
    uid = seed_user()
    conv = repo.create_conversation(uid, title_claimed=False)

    provider.title = "Failed Topic"
    provider.fail_chat = True
    with pytest.raises(GenerationError):
        _turn(repo, provider, uid, "first question", conv.id)

    provider.title = "Retry Topic"
    provider.fail_chat = False
    result = _turn(repo, provider, uid, "different question", conv.id)

    assert result.is_first_message
    assert result.title == "Retry Topic"
    assert repo.get_conversation(uid, conv.id).title == "Retry Topic"
    assert len(provider.generate_calls) == 2


def test_failed_turn_in_new_conversation_leaves_it_retitleable(repo, provider):
    uid = seed_user()
    provider.title = "Failed Topic"
    provider.fail_chat = True
    with pytest.raises(GenerationError):
        _turn(repo, provider, uid, "first question")

    (conv,) = repo.list_conversations(uid)
    assert conv.title_claimed is False

    provider.title = "Retry Topic"
    provider.fail_chat = False
    result = _turn(repo, provider, uid, "different question", conv.id)
    assert result.title == "Retry Topic"


def test_failed_follow_up_keeps_title(repo, provider):
    uid = seed_user()
    conv = repo.create_conversation(uid, "Cells")
    repo.append_exchange(conv.id, "q1", "a1")

    provider.fail_chat = True
    with pytest.raises(GenerationError):
        _turn(repo, provider, uid, "q2", conv.id)

    assert repo.get_conversation(uid, conv.id).title_claimed is True
    assert not repo.claim_title(uid, conv.id, "Other")


def test_release_title_ignores_conversations_with_messages(repo):
    uid = seed_user()
    conv = repo.create_conversation(uid, "Cells")
    repo.append_exchange(conv.id, "q1", "a1")
    repo.release_title(uid, conv.id)
    assert repo.get_conversation(uid, conv.id).title_claimed is True
