"""Prompt text for vision-model region detection."""

REGION_DETECTION_PROMPT = """Analyze this image and detect important regions like faces, text, and objects.
You must respond with ONLY a valid JSON array. Do not include any markdown formatting or explanation.
The response should be a raw JSON array with this exact structure:
[
    {
        "type": "face|text|object",
        "confidence": 0.0-1.0,
        "bbox": {
            "x": number (percentage of image width),
            "y": number (percentage of image height),
            "width": number (percentage of image width),
            "height": number (percentage of image height)
        },
        "description": "brief description of what was detected"
    }
]
Important: Your entire response must be valid JSON. Do not wrap it in code blocks or markdown."""


def build_detection_prompt() -> str:
    """Return the fixed instruction sent alongside every image."""
    return REGION_DETECTION_PROMPT
