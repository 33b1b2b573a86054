"""
Unit tests for the responder registry, dispatcher, classifier and profiles.
"""

import asyncio

import pytest

from app.agent.classifier import IntentClassifier, classification_schema
from app.agent.llm import CompletionResult
from app.agent.profiles import build_profile
from app.agent.responders import Dispatcher, ResponderDescriptor, ResponderRegistry
from app.core.errors import ClassifierOutputMissing, RegistryCoverageError, ResponderOutputMissing
from app.core.history import ConversationHistory, MessageItem
from conftest import FakeCompletion, answered, assistant, classified

CATALOGUE = ResponderDescriptor(name="Catalogue", instructions="answer", model="m")
CLASSIFIER = ResponderDescriptor(name="Classifier", instructions="classify", model="m")


def _history() -> ConversationHistory:
    return ConversationHistory([MessageItem.user_text("steel pipes?")])


class TestResponderRegistry:
    def test_requires_entry_for_every_label(self) -> None:
        with pytest.raises(RegistryCoverageError, match="missing=\\['B'\\]"):
            ResponderRegistry(["A", "B"], {"A": CATALOGUE})

    def test_rejects_unknown_labels(self) -> None:
        with pytest.raises(RegistryCoverageError, match="unknown=\\['C'\\]"):
            ResponderRegistry(["A"], {"A": CATALOGUE, "C": None})

    def test_rejects_empty_and_duplicate_labels(self) -> None:
        with pytest.raises(RegistryCoverageError):
            ResponderRegistry([], {})
        with pytest.raises(RegistryCoverageError):
            ResponderRegistry(["A", "A"], {"A": None})

    def test_explicit_none_entry_means_no_responder(self) -> None:
        registry = ResponderRegistry(["A", "B"], {"A": CATALOGUE, "B": None})
        assert registry.has_responder("A") is True
        assert registry.has_responder("B") is False
        assert "B" in registry
        assert registry.labels == ("A", "B")

    def test_entries_are_read_only(self) -> None:
        registry = ResponderRegistry(["A"], {"A": CATALOGUE})
        with pytest.raises(TypeError):
            registry.entries()["A"] = None


class TestDispatcher:
    def test_invokes_registered_responder_with_history(self) -> None:
        completion = FakeCompletion({"Catalogue": answered("Pipes come in many sizes.")})
        dispatcher = Dispatcher(ResponderRegistry(["A"], {"A": CATALOGUE}), completion)
        history = _history()

        outcome = asyncio.run(dispatcher.dispatch("A", history))

        assert outcome.output.as_payload() == {"output_text": "Pipes come in many sizes.", "classification": "A"}
        assert outcome.items == (assistant("Pipes come in many sizes."),)
        assert completion.calls == [("Catalogue", history)]

    def test_unmatched_label_returns_none_without_calls(self) -> None:
        completion = FakeCompletion({})
        dispatcher = Dispatcher(ResponderRegistry(["A", "B"], {"A": CATALOGUE, "B": None}), completion)
        assert asyncio.run(dispatcher.dispatch("B", _history())) is None
        assert completion.calls == []

    def test_missing_final_output_is_fatal(self) -> None:
        partial = assistant("thinking")
        completion = FakeCompletion({"Catalogue": CompletionResult(final_output=None, new_items=(partial,))})
        dispatcher = Dispatcher(ResponderRegistry(["A"], {"A": CATALOGUE}), completion)
        with pytest.raises(ResponderOutputMissing) as exc_info:
            asyncio.run(dispatcher.dispatch("A", _history()))
        assert exc_info.value.responder == "Catalogue"
        assert exc_info.value.items == (partial,)


class TestIntentClassifier:
    def test_schema_restricts_to_one_label(self) -> None:
        schema = classification_schema(["A", "B"])
        assert schema["properties"]["classification"]["enum"] == ["A", "B"]
        assert schema["required"] == ["classification"]

    def test_classify_returns_single_label(self) -> None:
        completion = FakeCompletion({"Classifier": classified("B")})
        classifier = IntentClassifier(CLASSIFIER, ["A", "B"], completion)

        outcome = asyncio.run(classifier.classify(_history()))

        assert outcome.result.label == "B"
        assert outcome.result.as_payload() == {
            "output_text": '{"classification":"B"}',
            "output_parsed": {"classification": "B"},
        }

    def test_descriptor_carries_output_schema(self) -> None:
        classifier = IntentClassifier(CLASSIFIER, ["A"], FakeCompletion({}))
        assert classifier.descriptor.output_schema == classification_schema(["A"])
        assert CLASSIFIER.output_schema is None

    @pytest.mark.parametrize("final_output", [None, {}, {"classification": "Z"}, "A"])
    def test_missing_or_invalid_output_is_fatal(self, final_output) -> None:
        reasoning = assistant("considering")
        completion = FakeCompletion(
            {"Classifier": CompletionResult(final_output=final_output, new_items=(reasoning,))}
        )
        classifier = IntentClassifier(CLASSIFIER, ["A", "B"], completion)
        with pytest.raises(ClassifierOutputMissing) as exc_info:
            asyncio.run(classifier.classify(_history()))
        assert exc_info.value.items == (reasoning,)


class TestProfiles:
    def test_rustx_profile(self) -> None:
        profile = build_profile("rustx", "vs_1")
        assert profile.labels == ("Catalogue_Agent", "Product_Agent")
        assert profile.registry.has_responder("Catalogue_Agent")
        assert not profile.registry.has_responder("Product_Agent")
        tools = profile.registry.get("Catalogue_Agent").tools
        assert tools == ({"type": "file_search", "vector_store_ids": ["vs_1"]},)

    def test_catalogue_profile_covers_every_label(self) -> None:
        profile = build_profile("catalogue", "vs_1")
        assert set(profile.registry.entries()) == set(profile.labels)
        assert profile.registry.has_responder("Product_catalogue_agent")
        unwired = [label for label in profile.labels if not profile.registry.has_responder(label)]
        assert unwired == ["Complaints_agent", "Careers_agent", "Small_talk_agent"]

    def test_every_label_is_named_in_classifier_instructions(self) -> None:
        profile = build_profile("catalogue", "vs_1")
        for label in profile.labels:
            assert label in profile.classifier.instructions

    def test_unknown_profile(self) -> None:
        with pytest.raises(ValueError, match="Unknown workflow profile"):
            build_profile("nope", "vs_1")
