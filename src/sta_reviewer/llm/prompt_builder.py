"""Prompt construction for paper reviews."""

import json

__all__ = ["SYSTEM_PROMPT", "build_review_prompt"]

SYSTEM_PROMPT: str = "You are a strict academic paper reviewer."

_TASK: str = (
    "Read the paper text given at the end and review it.\n"
    "1. Rate its overall quality as an STA score between 0 and 500 "
    "(originality, methodology, clarity, evidence, contribution; 100 points each).\n"
    "2. Estimate the probability, from 0 to 100, that the text was written by an AI, "
    "and explain which passages raise suspicion.\n"
    "3. Summarize the paper in a few sentences.\n"
    "Return ONLY a JSON object with the keys "
    "\"title\", \"author\", \"score\", \"scoreUsage\", \"aiScore\", \"aiReason\", \"summary\". "
    "Use null for anything the text does not contain."
)

_EXAMPLE_INPUT: str = (
    "Predictive Sales Modeling for Convenience Stores Using Machine Learning "
    "Kim, J. and Lee, S. 1. Introduction The convenience store industry holds an "
    "important position in retail due to 24-hour operation and accessibility. "
    "This study forecasts future sales with machine learning to improve inventory "
    "management. ... 4. Results LSTM: RMSE 1014.7 / MAE 792.3. The LSTM model "
    "recorded the lowest RMSE and MAE. 5. Conclusion ..."
)

_EXAMPLE_OUTPUT: str = json.dumps(
    {
        "title": "Predictive Sales Modeling for Convenience Stores Using Machine Learning",
        "author": ["Kim, J.", "Lee, S."],
        "score": "310",
        "scoreUsage": "Originality 55, Methodology 70, Clarity 65, Evidence 60, Contribution 60",
        "aiScore": "85",
        "aiReason": "Generic phrasing such as 'this suggests applicability to real-time "
                    "inventory management' with no concrete detail.",
        "summary": "Compares baseline, Random Forest, XGBoost and LSTM sales forecasts; "
                   "LSTM performs best.",
    },
    ensure_ascii=False,
    indent=2,
)


def build_review_prompt(text: str) -> str:
    """Build the review instruction followed by the document text.

    The result is deterministic for a given text, which is included
    unchanged.

    Args:
        text: Extracted paper text

    Returns:
        Complete user prompt
    """
    return (
        f"{_TASK}\n\n"
        f"Example input:\n{_EXAMPLE_INPUT}\n\n"
        f"Example output:\n{_EXAMPLE_OUTPUT}\n\n"
        f"Text:\n{text}"
    )
