"""Dossier Analyst - multimodal intelligence analysis console.

Upload an image, audio, video or document; Gemini returns a structured
report with a threat assessment, which the console renders.
"""

__version__ = "1.0.0"
