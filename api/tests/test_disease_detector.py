from __future__ import annotations
import random
import pytest
from agrisense.models.results import Severity
from agrisense.providers.base import UnavailableProvider
from agrisense.services.disease_detector import (
    DiseaseDetector,
    CONDITION_CATALOGUE,
    CATALOGUE_SOURCE,
    PRIMARY_SOURCE,
    SECONDARY_SOURCE,
    clean_label,
    confidence_tier,
    extract_from_text,
    parse_structured_response,
)
from tests.fakes import FakeClassifier, FakeVisionProvider, transport_error

IMAGE = b"\xff\xd8\xff\xe0fake-jpeg-bytes"
CATALOGUE_LABELS = {f.label for f in CONDITION_CATALOGUE}

def detector(vision=None, classifier=None, seed=None) -> DiseaseDetector:
    return DiseaseDetector(
        vision or UnavailableProvider("vision-llm"),
        classifier or UnavailableProvider("image-classifier"),
        rng=random.Random(seed) if seed is not None else None,
    )

@pytest.mark.asyncio
async def test_free_text_vision_answer_is_extracted():
    vision = FakeVisionProvider(
        "This leaf appears to be Late Blight with about 85% confidence, severe damage visible."
    )
    result = await detector(vision=vision).identify_disease(IMAGE)

    assert result.success is True
    assert result.source == PRIMARY_SOURCE
    assert result.primary.label == "Late Blight"
    assert result.primary.confidence == 85
    assert result.primary.severity == Severity.HIGH
    assert [f.label for f in result.alternatives] == ["Leaf Spot", "Nutrient Deficiency"]
    assert all(f.confidence < result.primary.confidence for f in result.alternatives)

@pytest.mark.asyncio
async def test_json_vision_answer_is_parsed():
    vision = FakeVisionProvider(
        'Here is my analysis:\n```json\n{"disease": "Early Blight", "confidence": 0.92, '
        '"severity": "moderate", "description": "Dark concentric rings on older leaves"}\n```'
    )
    result = await detector(vision=vision).identify_disease(IMAGE)

    assert result.source == PRIMARY_SOURCE
    assert result.primary.label == "Early Blight"
    assert result.primary.confidence == 92
    assert result.primary.severity == Severity.MEDIUM
    assert result.primary.description == "Dark concentric rings on older leaves"
    assert len(result.alternatives) == 2

@pytest.mark.asyncio
async def test_unparseable_vision_answer_advances_to_classifier():
    vision = FakeVisionProvider("Sorry, the photo is too blurry to say anything.")
    classifier = FakeClassifier([
        {"label": "Tomato___healthy", "score": 0.05},
        {"label": "Tomato___Late_blight", "score": 0.91},
        {"label": "Potato___Early_blight", "score": 0.65},
        {"label": "Corn_(maize)___Common_rust_", "score": 0.45},
    ])
    result = await detector(vision=vision, classifier=classifier).identify_disease(IMAGE)

    assert vision.calls == 1
    assert result.source == SECONDARY_SOURCE
    assert result.synthetic is False
    assert [f.confidence for f in result.predictions] == [91, 65, 45]
    assert [f.confidence_tier for f in result.predictions] == [
        "High Confidence", "Moderate Confidence", "Low Confidence"
    ]
    assert result.primary.label == "Tomato - Late blight"

@pytest.mark.asyncio
async def test_healthy_classifier_label_has_no_severity():
    classifier = FakeClassifier([{"label": "Apple___healthy", "score": 0.97}])
    result = await detector(classifier=classifier).identify_disease(IMAGE)
    assert result.primary.severity == Severity.NONE
    assert result.alternatives == []

@pytest.mark.asyncio
async def test_both_providers_failing_uses_catalogue():
    vision = FakeVisionProvider(error=transport_error("fake-vision"))
    classifier = FakeClassifier(error=transport_error("fake-classifier"))
    result = await detector(vision=vision, classifier=classifier).identify_disease(IMAGE)

    assert result.success is True
    assert result.source == CATALOGUE_SOURCE
    assert result.synthetic is True
    assert len(result.predictions) == 3
    assert all(f.confidence >= 15 for f in result.predictions)
    assert {f.label for f in result.predictions} <= CATALOGUE_LABELS
    assert vision.calls == 1 and classifier.calls == 1

@pytest.mark.asyncio
async def test_empty_classifier_answer_uses_catalogue():
    result = await detector(classifier=FakeClassifier([])).identify_disease(IMAGE)
    assert result.source == CATALOGUE_SOURCE

@pytest.mark.asyncio
async def test_malformed_classifier_answer_uses_catalogue():
    result = await detector(classifier=FakeClassifier([{"label": "Rust"}])).identify_disease(IMAGE)
    assert result.source == CATALOGUE_SOURCE

@pytest.mark.asyncio
async def test_unexpected_error_routes_to_catalogue():
    vision = FakeVisionProvider(error=RuntimeError("bug in client"))
    result = await detector(vision=vision).identify_disease(IMAGE)
    assert result.success is True
    assert result.source == CATALOGUE_SOURCE

@pytest.mark.asyncio
@pytest.mark.parametrize("image", [b"", b"\x00", b"not an image at all", bytes(range(256)) * 40])
async def test_any_byte_buffer_succeeds(image):
    result = await detector().identify_disease(image)
    assert result.success is True
    assert result.primary is not None
    assert 0 <= result.primary.confidence <= 100

@pytest.mark.asyncio
async def test_empty_buffer_skips_model_tiers():
    vision = FakeVisionProvider("Disease: Rust")
    result = await detector(vision=vision).identify_disease(b"")
    assert vision.calls == 0
    assert result.source == CATALOGUE_SOURCE

def test_catalogue_alternatives_respect_floor():
    for seed in range(200):
        result = detector(seed=seed).catalogue_result("test")
        assert len(result.alternatives) == 2
        assert all(f.confidence >= 15 for f in result.alternatives)
        assert result.primary.label in CATALOGUE_LABELS

def test_catalogue_is_deterministic_with_seeded_rng():
    first = detector(seed=42).catalogue_result("test").to_dict()
    second = detector(seed=42).catalogue_result("test").to_dict()
    assert first == second

def test_catalogue_result_shape():
    data = detector(seed=1).catalogue_result("test").to_dict()
    assert set(data) == {"success", "predictions", "primary_disease", "source", "synthetic"}
    assert data["primary_disease"] == data["predictions"][0]
    assert data["synthetic"] is True

@pytest.mark.parametrize("text,label,confidence,severity", [
    ("Disease: Powdery Mildew\nConfidence: 60%\nSeverity: mild", "Powdery Mildew", 60, Severity.LOW),
    ("Condition: bacterial blight, noticeable spread", "Bacterial Blight", 70, Severity.MEDIUM),
    ("This is likely early blight, a slight infection.", "Early Blight", 70, Severity.LOW),
    ("The plant appears to be a case of rust infection at an advanced stage", "Rust Infection", 70, Severity.HIGH),
])
def test_extract_from_text(text, label, confidence, severity):
    finding = extract_from_text(text)
    assert finding.label == label
    assert finding.confidence == confidence
    assert finding.severity == severity

def test_extract_from_text_without_disease_name():
    assert extract_from_text("I am not able to analyse this photo.") is None

def test_structured_response_needs_disease():
    assert parse_structured_response('{"confidence": 80}') is None
    assert parse_structured_response("no json here") is None
    finding = parse_structured_response('{"disease": "Healthy", "confidence": 140, "severity": "None"}')
    assert finding.confidence == 100
    assert finding.severity == Severity.NONE

def test_confidence_tiers():
    assert confidence_tier(0.81) == "High Confidence"
    assert confidence_tier(0.8) == "Moderate Confidence"
    assert confidence_tier(0.5) == "Low Confidence"
    assert confidence_tier(0.4) == "Very Low Confidence"

def test_clean_label():
    assert clean_label("Tomato___Late_blight") == "Tomato - Late blight"
    assert clean_label("Pepper,_bell___healthy") == "Pepper, bell - healthy"

@pytest.mark.asyncio
async def test_classifier_scores_map_to_percentages():
    classifier = FakeClassifier([
        {"label": "Tomato___Late_blight", "score": 0.97},
        {"label": "Tomato___healthy", "score": 0.02},
        {"label": "Tomato___Leaf_Mold", "score": 0.01},
    ])
    result = await detector(classifier=classifier).identify_disease(IMAGE)
    assert result.source == SECONDARY_SOURCE
    assert [f.confidence for f in [result.primary, *result.alternatives]] == [97, 2, 1]

@pytest.mark.parametrize("text", [
    "This plant is unlikely to have any disease.",
    "The leaf looks disease-free and healthy.",
])
def test_extract_from_text_ignores_healthy_phrasing(text):
    assert extract_from_text(text) is None

def test_extracted_percentage_is_not_scaled():
    finding = extract_from_text("Disease: Leaf Mold, only 0.8% of leaf area affected")
    assert finding.label == "Leaf Mold"
    assert finding.confidence == 1
