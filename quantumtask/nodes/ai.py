from .base import BaseNodeKind, require_text, non_negative_int, one_of


class AIImageGenerationNode(BaseNodeKind):
    """
    Generate an image from a text prompt.

    The node only carries configuration; the executor reads `prompt`,
    `imageSize` and `timeout` (milliseconds) when the flow runs.
    """
    NODE_TYPE = "ai_image_generation"
    LABEL = "Generate Image"
    DESCRIPTION = "Generate an image with an AI model"
    IMAGE_SIZES = ["256x256", "512x512", "1024x1024"]
    PARAMS = {
        "prompt": {"type": "string", "description": "e.g., A futuristic city at sunset"},
        "imageSize": {
            "type": "string",
            "enum": IMAGE_SIZES,
            "default": "512x512",
            "description": "Output image size",
        },
        "timeout": {"type": "int", "default": 60000, "description": "Timeout (ms)"},
    }
    DEFAULTS = {"prompt": "", "imageSize": "512x512", "timeout": 60000}

    @classmethod
    def validate(cls, values, required=True):
        description = require_text(values, "description", "Description is required", required)
        prompt = require_text(values, "prompt", "Prompt is required", required)
        image_size = one_of(values, "imageSize", cls.IMAGE_SIZES, "Image size")
        timeout = non_negative_int(values, "timeout", "Timeout must be a non-negative number")
        return description, {"prompt": prompt, "imageSize": image_size, "timeout": timeout}
