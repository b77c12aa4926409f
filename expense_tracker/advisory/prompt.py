"""
Advisory prompt.

The advisor is asked for two parts separated by one blank line:
a one-sentence insight, then a Markdown report. The snapshot is
embedded as a JSON block.
"""

import json

from expense_tracker.models.advisory import FinancialSnapshot

ANALYSIS_PROMPT = """You are a professional personal finance advisor. Based on the following JSON data for the current month ({period}), pulled from the user's expense tracking app, provide two parts:

1. **One-sentence quick insight**: summarise in a single sentence the financial highlight or problem the user most needs to pay attention to. It must be short, concise and to the point.
2. **Detailed analysis report**: a detailed financial analysis in Markdown format, including but not limited to:
   * **Spending structure**: the share of each kind of expense and the main costs.
   * **Income and expense balance**: whether income covers spending and whether there is financial risk.
   * **Asset overview**: a brief assessment of the user's accounts and liabilities.
   * **Personal advice**: 2-3 concrete, actionable suggestions based on the analysis.

Separate the "one-sentence quick insight" and the "detailed analysis report" with exactly two newline characters. The response must follow this format strictly.
Answer in {language}.

Financial data:
```json
{data}
```"""


def build_analysis_prompt(snapshot: FinancialSnapshot, language: str) -> str:
    """Render the prompt for a snapshot."""
    data = json.dumps(snapshot.to_prompt_data(), ensure_ascii=False, indent=2)
    return ANALYSIS_PROMPT.format(
        period=f"{snapshot.year:04d}-{snapshot.month:02d}",
        language=language,
        data=data,
    )
