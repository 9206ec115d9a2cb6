"""DSPy signatures for filename suggestion programs."""

import dspy


class ImageFilenameSignature(dspy.Signature):
    """Look at the image and suggest a clear, descriptive filename for it."""

    image: dspy.Image = dspy.InputField()
    prompt: str = dspy.InputField()
    filename: str = dspy.OutputField(desc="Suggested filename without extension")


class TextFilenameSignature(dspy.Signature):
    """Suggest a concise but descriptive filename from the request."""

    prompt: str = dspy.InputField()
    filename: str = dspy.OutputField(desc="Suggested filename without extension")
