"""
Trained text classifier and the process-wide classifier slot.

The classifier is optional. Callers hold a ``ClassifierState`` which is either
``NoClassifier`` or ``LoadedClassifier`` and must handle both branches.
Retraining and reloads replace the slot's state with a single reference
assignment; a reader that took a snapshot keeps using it for the whole pass.
"""

import logging
import os
import threading
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import joblib
import numpy as np
from sklearn.dummy import DummyClassifier
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import accuracy_score, f1_score, precision_score, recall_score
from sklearn.model_selection import train_test_split
from sklearn.pipeline import Pipeline

from .exceptions import ModelFileNotFoundError, UnusableTrainingDataError
from .models import TrainingMetrics

logger = logging.getLogger(__name__)

# Hold out a test split only when both classes have enough examples
MIN_SAMPLES_FOR_SPLIT = 20
MIN_CLASS_SAMPLES_FOR_SPLIT = 2
TEST_SIZE = 0.2
RANDOM_STATE = 42

# Words of any length plus runs of symbols, so "!!!" or "$$$" still yield features
TOKEN_PATTERN = r"(?u)\b\w+\b|[^\w\s]+"


class TextClassifier:
    """
    TF-IDF + logistic regression over raw text.

    ``predict`` returns the probability that the text should be blocked
    (the "spam-like" signal projected onto all categories by the combiner).
    """

    def __init__(self, pipeline: Optional[Pipeline] = None):
        self.pipeline = pipeline

    def is_loaded(self) -> bool:
        return self.pipeline is not None

    @staticmethod
    def _build_pipeline(single_class: bool) -> Pipeline:
        estimator = (
            DummyClassifier(strategy="most_frequent")
            if single_class
            else LogisticRegression(max_iter=1000, class_weight="balanced")
        )
        return Pipeline([
            ("tfidf", TfidfVectorizer(
                lowercase=True,
                token_pattern=TOKEN_PATTERN,
                ngram_range=(1, 2),
                min_df=1,
                sublinear_tf=True,
            )),
            ("clf", estimator),
        ])

    def train(self, texts: Sequence[str], labels: Sequence[bool]) -> TrainingMetrics:
        """
        Fit on ``texts`` / ``labels`` and return evaluation metrics.

        Metrics come from a held-out split when there is enough data for
        both classes, otherwise from the training data itself. Raises
        UnusableTrainingDataError when the texts contain no tokens at all.
        """
        if len(texts) != len(labels):
            raise ValueError("texts and labels must have the same length")
        if not texts:
            raise ValueError("cannot train on an empty dataset")

        x = [text or "" for text in texts]
        y = np.asarray([bool(label) for label in labels])
        positives = int(y.sum())
        negatives = len(y) - positives
        single_class = positives == 0 or negatives == 0

        if (
            not single_class
            and len(y) >= MIN_SAMPLES_FOR_SPLIT
            and min(positives, negatives) >= MIN_CLASS_SAMPLES_FOR_SPLIT
        ):
            x_train, x_test, y_train, y_test = train_test_split(
                x, y, test_size=TEST_SIZE, random_state=RANDOM_STATE, stratify=y
            )
        else:
            x_train, x_test, y_train, y_test = x, x, y, y

        pipeline = self._build_pipeline(single_class)
        try:
            pipeline.fit(x_train, y_train)
        except ValueError as e:
            # TfidfVectorizer: empty vocabulary
            raise UnusableTrainingDataError(len(y), str(e)) from e
        predicted = pipeline.predict(x_test)

        self.pipeline = pipeline
        return TrainingMetrics(
            accuracy=float(accuracy_score(y_test, predicted)),
            precision=float(precision_score(y_test, predicted, pos_label=True, zero_division=0)),
            recall=float(recall_score(y_test, predicted, pos_label=True, zero_division=0)),
            f1_score=float(f1_score(y_test, predicted, pos_label=True, zero_division=0)),
            sample_count=len(y),
        )

    def predict(self, text: str) -> float:
        """Probability in [0, 1] that ``text`` belongs to the block class."""
        if self.pipeline is None:
            raise RuntimeError("Classifier is not trained or loaded")
        classes = list(self.pipeline.classes_)
        if True not in classes:
            return 0.0
        probabilities = self.pipeline.predict_proba([text or ""])[0]
        return float(probabilities[classes.index(True)])

    def save(self, path: str) -> None:
        """Write the pipeline to ``path``; readers never see a partial file."""
        if self.pipeline is None:
            raise RuntimeError("Cannot save an untrained classifier")
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        partial_path = f"{path}.partial"
        joblib.dump(self.pipeline, partial_path)
        os.replace(partial_path, path)
        logger.info(f"Saved classifier to {path}")

    @classmethod
    def load(cls, path: str) -> "TextClassifier":
        if not os.path.exists(path):
            raise ModelFileNotFoundError(path)
        pipeline = joblib.load(path)
        logger.info(f"Loaded classifier from {path}")
        return cls(pipeline)


# =============================================================================
# Classifier State
# =============================================================================

@dataclass(frozen=True)
class NoClassifier:
    """No trained model is available; scoring is lexicon-only."""
    version: None = None

    @property
    def is_loaded(self) -> bool:
        return False


@dataclass(frozen=True)
class LoadedClassifier:
    """A trained model and the version it was loaded from (None if unsaved)."""
    model: TextClassifier
    version: Optional[int] = None

    @property
    def is_loaded(self) -> bool:
        return True


ClassifierState = Union[NoClassifier, LoadedClassifier]


class ClassifierSlot:
    """
    Holds the live classifier state.

    ``get`` is a plain attribute read. Writers serialize on a lock and
    publish a new immutable state with one assignment.
    """

    def __init__(self, state: Optional[ClassifierState] = None):
        self._state: ClassifierState = state or NoClassifier()
        self._write_lock = threading.Lock()

    def get(self) -> ClassifierState:
        return self._state

    def swap(self, state: ClassifierState) -> ClassifierState:
        """Install ``state`` and return the previous one."""
        with self._write_lock:
            previous = self._state
            self._state = state
        logger.info(f"Classifier slot swapped: version {previous.version} -> {state.version}")
        return previous

    def clear(self) -> None:
        self.swap(NoClassifier())

    @property
    def loaded_version(self) -> Optional[int]:
        return self._state.version


def load_classifier(path: str, version: Optional[int]) -> LoadedClassifier:
    """Load a model file into a ``LoadedClassifier``. Raises ModelFileNotFoundError."""
    return LoadedClassifier(model=TextClassifier.load(path), version=version)


def model_path_for_version(models_dir: str, version: int) -> str:
    return os.path.join(models_dir, f"model_v{version}.joblib")


# Process-wide slot shared by the worker, Celery tasks and the API
classifier_slot = ClassifierSlot()
