"""Prompts used by the analysis engine to annotate workflow screenshots."""

ANALYST_SYSTEM_PROMPT = """You are an expert at analyzing screenshots of web applications.

You will be shown a series of screenshots of the same workflow, taken at regular intervals while it runs. You provide detailed observations about what you see and track progress across the screenshots.

If you see any errors, issues, or messages like "I'm sorry but I can't process your request", flag them clearly."""

FIRST_SNAPSHOT_PROMPT = (
    "Evaluate this screenshot of a workflow and explain everything you see. "
    "If you see any errors, clearly state so."
)

FOLLOW_UP_SNAPSHOT_PROMPT = (
    "Analyze this new screenshot as well as the previous screenshots and annotations. "
    "Check if the workflow is progressing well. "
    "If you see any issues (errors, mistakes, messages like "
    "'I'm sorry but I can't process your request'), flag them clearly. "
    "Compare with previous screenshots to identify changes or progress."
)

SUMMARY_PROMPT = """Based on all the screenshots you've analyzed, write a concise summary of the workflow execution.

- If anything went wrong, lead with the failures: list each issue as a bullet and reference the screenshot number(s) where it was observed (e.g. "Screenshot 4").
- If nothing went wrong, say clearly that the workflow ran successfully and cite the screenshot that shows the final state.
- Keep it short: a reader should know within a few lines whether the run succeeded."""

ANNOTATION_ERROR_TEMPLATE = "Error evaluating screenshots: {error}"
SUMMARY_ERROR_TEMPLATE = "Error generating summary: {error}"


def snapshot_prompt(sequence_index: int) -> str:
    """Return the user prompt for the snapshot at ``sequence_index``."""
    return FIRST_SNAPSHOT_PROMPT if sequence_index == 0 else FOLLOW_UP_SNAPSHOT_PROMPT
