"""Extraction prompts sent to the LLM providers."""

from dataclasses import dataclass

from backend.parsers.chunking import Chunk

SYSTEM_PROMPT = (
    "You are a financial data extraction expert specializing in Indian bank statements. "
    "Extract transaction data accurately from Kotak, HDFC, SBI, ICICI and other Indian bank "
    "statements. Always return valid JSON format without markdown formatting."
)

MAX_DESCRIPTION_CHARS = 50

EXTRACTION_RULES = """IMPORTANT RULES:
1. Extract ONLY real transactions from the statement (ignore headers, footers, account details)
2. Look for transaction rows with Date, Narration, Amount, and Balance columns
3. For UPI transactions: extract the merchant name from the narration (e.g., "UPI/LILA PITTURA DECO" -> "LILA PITTURA DECO")
4. For IMPS/NEFT: extract the sender/receiver name
5. Amounts: Use the "Withdrawal(Dr)/Deposit(Cr)" column values
6. Type: "income" for (Cr) credits, "expense" for (Dr) debits
7. Currency: {currency} unless the statement states otherwise
8. Date: Use the exact date from the statement (format: YYYY-MM-DD)
9. Category: Categorize based on merchant/description:
   - UPI/Gaming apps -> "entertainment"
   - UPI/Food merchants -> "food"
   - UPI/Transport -> "transport"
   - IMPS/NEFT transfers -> "other"
   - Salary/credits -> "salary"
   - Shopping -> "shopping"
   - Bills/utilities -> "utilities"
   - Anything else -> "other"
"""

OUTPUT_FORMAT = """Return ONLY a valid JSON array. Keep descriptions SHORT (max {max_chars} chars). Format:
[{{"description":"UPI/MERCHANT","amount":300,"type":"expense","category":"food","date":"2023-09-06","merchant":"MERCHANT","currency":"{currency}"}}]

CRITICAL: Ensure valid JSON - no line breaks in strings, proper escaping, complete array. No markdown, no prose."""


@dataclass(frozen=True)
class ExtractionPrompt:
    """System and user messages for one extraction call."""

    system: str
    user: str

    def messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def build_extraction_prompt(content: str | Chunk, currency: str = "INR") -> ExtractionPrompt:
    """
    Render the extraction prompt for a whole statement or one chunk of it.

    The output is fully determined by the inputs so the same chunk always
    produces the same prompt.
    """
    if isinstance(content, Chunk):
        intro = (
            "Extract ALL transactions from this Indian bank statement chunk "
            f"(Part {content.index}/{content.total_chunks})."
        )
        body_label = "Statement chunk:"
        text = content.text
    else:
        intro = "Extract ALL transactions from this Indian bank statement."
        body_label = "Statement content:"
        text = content

    user = "\n\n".join(
        [
            intro,
            EXTRACTION_RULES.format(currency=currency),
            f"{body_label}\n{text}",
            OUTPUT_FORMAT.format(max_chars=MAX_DESCRIPTION_CHARS, currency=currency),
        ]
    )
    return ExtractionPrompt(system=SYSTEM_PROMPT, user=user)
