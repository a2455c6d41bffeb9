"""Tests for the text classifier and the classifier slot."""

import pytest
from sklearn.dummy import DummyClassifier

from moderation_agent.classifier import (
    ClassifierSlot,
    LoadedClassifier,
    NoClassifier,
    TextClassifier,
    load_classifier,
    model_path_for_version,
)
from moderation_agent.exceptions import ModelFileNotFoundError, RetrainSkippedError, UnusableTrainingDataError

SPAM = [f"buy cheap pills now limited offer {i}" for i in range(6)]
HAM = [f"had a lovely walk in the park with friends {i}" for i in range(6)]


@pytest.fixture
def trained():
    model = TextClassifier()
    model.train(SPAM + HAM, [True] * len(SPAM) + [False] * len(HAM))
    return model


# =============================================================================
# Training and Prediction
# =============================================================================

def test_train_reports_metrics(trained):
    metrics = TextClassifier().train(SPAM + HAM, [True] * 6 + [False] * 6)

    assert metrics.sample_count == 12
    for value in (metrics.accuracy, metrics.precision, metrics.recall, metrics.f1_score):
        assert 0.0 <= value <= 1.0


def test_prediction_separates_classes(trained):
    spam_probability = trained.predict("buy cheap pills now")
    ham_probability = trained.predict("lovely walk in the park")

    assert 0.0 <= ham_probability < spam_probability <= 1.0


def test_single_class_training_uses_constant_model():
    model = TextClassifier()
    model.train(HAM, [False] * len(HAM))

    assert isinstance(model.pipeline.named_steps["clf"], DummyClassifier)
    assert model.predict("anything at all") == 0.0


def test_single_positive_class_predicts_block():
    model = TextClassifier()
    model.train(SPAM, [True] * len(SPAM))

    assert model.predict("anything at all") == pytest.approx(1.0)


def test_symbol_and_single_letter_texts_are_trainable():
    texts = ["!!!", "$$$ ???", "a", "b c", "!!! $$$", "x"]
    model = TextClassifier()

    metrics = model.train(texts, [True, True, False, False, True, False])

    assert metrics.sample_count == 6
    assert 0.0 <= model.predict("$$$") <= 1.0


def test_texts_without_tokens_are_rejected_as_unusable():
    with pytest.raises(UnusableTrainingDataError) as exc_info:
        TextClassifier().train(["", "   "] * 5, [True, False] * 5)

    assert exc_info.value.sample_count == 10
    assert isinstance(exc_info.value, RetrainSkippedError)


def test_mismatched_inputs_are_rejected():
    with pytest.raises(ValueError):
        TextClassifier().train(["one", "two"], [True])
    with pytest.raises(ValueError):
        TextClassifier().train([], [])


def test_untrained_classifier_cannot_predict():
    with pytest.raises(RuntimeError):
        TextClassifier().predict("hello")


# =============================================================================
# Persistence
# =============================================================================

def test_saved_model_loads_with_same_predictions(trained, tmp_path):
    path = model_path_for_version(str(tmp_path), 4)
    trained.save(path)

    loaded = load_classifier(path, 4)

    assert path.endswith("model_v4.joblib")
    assert sorted(p.name for p in tmp_path.iterdir()) == ["model_v4.joblib"]
    assert loaded.version == 4
    assert loaded.model.predict("buy cheap pills") == pytest.approx(trained.predict("buy cheap pills"))


def test_loading_missing_file_raises(tmp_path):
    with pytest.raises(ModelFileNotFoundError):
        TextClassifier.load(str(tmp_path / "nope.joblib"))


# =============================================================================
# Slot
# =============================================================================

def test_slot_starts_empty():
    slot = ClassifierSlot()

    assert isinstance(slot.get(), NoClassifier)
    assert slot.loaded_version is None
    assert not slot.get().is_loaded


def test_swap_returns_previous_state(trained):
    slot = ClassifierSlot()
    first = LoadedClassifier(model=trained, version=1)
    second = LoadedClassifier(model=trained, version=2)

    assert isinstance(slot.swap(first), NoClassifier)
    assert slot.swap(second) is first
    assert slot.get() is second
    assert slot.loaded_version == 2


def test_clear_unloads(trained):
    slot = ClassifierSlot(LoadedClassifier(model=trained, version=1))
    slot.clear()

    assert slot.loaded_version is None
