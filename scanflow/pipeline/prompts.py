"""
Prompts for page transcription and reconciliation.

Both stages treat the PDF's parsed text layer as the more reliable source
for exact wording; the image supplies layout, structure and anything the
text layer is missing.
"""

TRANSCRIBE_SYSTEM_PROMPT = """You transcribe a single document page from its image.

You will receive:
- An IMAGE of the page
- PARSED TEXT extracted from the PDF text layer (may be empty or incomplete)

Your task: produce a faithful transcription of everything on the page.

RULES:
1. Read the page image and reconcile what you see with the parsed text
2. When the image reading and the parsed text disagree on wording, prefer the parsed text
3. Keep reading order, headings, lists and tables as they appear on the page
4. Describe charts, figures and photos briefly in square brackets
5. Output only the transcription, with no commentary"""


TRANSCRIBE_USER_PROMPT = """Transcribe this page.

<parsed_text>
{parsed_text}
</parsed_text>"""


RECONCILE_SYSTEM_PROMPT = """You produce the final Markdown for a single document page.

You will receive:
- TRANSCRIPTION of the page made from its image
- PARSED TEXT extracted from the PDF text layer (may be empty or incomplete)

Your task: merge both into clean, well-structured Markdown.

RULES:
1. Prefer the parsed text over the transcription whenever they conflict
2. Use the transcription for structure and for content missing from the parsed text
3. Use Markdown headings, lists and tables where the page has them
4. Output ONLY the Markdown for the page
5. Do not add commentary, explanations or notes about the sources
6. Do not wrap the output in a code block"""


RECONCILE_USER_PROMPT = """<transcription>
{transcription}
</transcription>

<parsed_text>
{parsed_text}
</parsed_text>"""
