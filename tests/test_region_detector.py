import asyncio
import base64

import pytest

from services.openai.region_detector import RegionDetector
from services.openai.region_prompts import REGION_DETECTION_PROMPT
from conftest import FENCED_REGIONS_REPLY, FakeOpenAI


def test_detect_regions_sends_image_and_instruction():
    client = FakeOpenAI(FENCED_REGIONS_REPLY)
    detector = RegionDetector(client, model="gpt-test")

    regions = asyncio.run(detector.detect_regions(b"\xff\xd8fake", "image/png"))

    assert [region.type for region in regions] == ["face"]
    (call,) = client.responses.calls
    assert call["model"] == "gpt-test"
    content = call["input"][0]["content"]
    expected_url = "data:image/png;base64," + base64.b64encode(b"\xff\xd8fake").decode("utf-8")
    assert {"type": "input_image", "image_url": expected_url} in content
    assert {"type": "input_text", "text": REGION_DETECTION_PROMPT} in content


def test_detect_regions_returns_empty_on_invalid_json():
    detector = RegionDetector(FakeOpenAI("Sorry, I can't help with that."))

    assert asyncio.run(detector.detect_regions(b"img")) == []


def test_detect_regions_returns_empty_when_call_fails():
    detector = RegionDetector(FakeOpenAI(ConnectionError("model unavailable")))

    assert asyncio.run(detector.detect_regions(b"img")) == []


def test_detector_requires_client():
    with pytest.raises(ValueError):
        RegionDetector(None)
