"""
Prompt and response schema for invoice data extraction.

Contains:
- The fixed instruction sent alongside every invoice document
- The structured-output schema the model's JSON must conform to
"""

INVOICE_EXTRACTION_PROMPT = '''Analyze the provided invoice document. Perform OCR and extract the following information:
- Invoice Number
- Supplier Number
- Invoice Date
- Due Date
- Invoice Total amount
- All line items.

For each line item, extract:
- Description
- Quantity
- Unit Price
- Total line item amount

Based on the line item description, derive a relevant business category (e.g., 'Office Supplies', 'Software License', 'Consulting Services', 'Hardware').

IMPORTANT: Identify all line items related to 'freight', 'shipping', or 'delivery'. Sum the 'lineTotal' for these specific items and provide the result in the top-level field 'totalFreight'. These freight-related lines must then be EXCLUDED from the main 'lineItems' array. If no freight charges are found, set 'totalFreight' to 0.

Dates must be in ISO format (YYYY-MM-DD). Ensure all monetary values are numbers, without currency symbols.
If a top-level field like 'Supplier Number' or 'Due Date' is not found, omit it. Do not invent values.

Return the extracted data in the specified JSON format.
'''


def _string(description: str) -> dict:
    return {"type": "STRING", "description": description}


def _number(description: str) -> dict:
    return {"type": "NUMBER", "description": description}


LINE_ITEM_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "description": _string("The name or description of the line item."),
        "category": _string(
            'A derived category for the item (e.g., "Software", "Office Supplies").'
        ),
        "quantity": _number("The quantity of the item."),
        "unitPrice": _number("The price per unit of the item."),
        "lineTotal": _number("The total price for the line item (quantity * unit price)."),
    },
    "required": ["description", "category", "quantity", "unitPrice", "lineTotal"],
}

INVOICE_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "invoiceNumber": _string("The unique invoice identifier."),
        "supplierNumber": _string("The supplier or vendor number."),
        "invoiceDate": _string("The date the invoice was issued (YYYY-MM-DD)."),
        "dueDate": _string("The date the payment is due (YYYY-MM-DD)."),
        "invoiceTotal": _number("The final total amount of the invoice."),
        "totalFreight": _number(
            "The sum of all line items identified as freight or shipping costs."
        ),
        "lineItems": {
            "type": "ARRAY",
            "description": (
                "A list of all items or services being billed. Any line items "
                "identified as freight or shipping are excluded from this list."
            ),
            "items": LINE_ITEM_SCHEMA,
        },
    },
    "required": ["invoiceNumber", "invoiceDate", "invoiceTotal", "lineItems"],
}


def get_extraction_prompt() -> str:
    """
    Get the invoice extraction instruction.

    Returns:
        Prompt string
    """
    return INVOICE_EXTRACTION_PROMPT


def get_response_schema() -> dict:
    """
    Get the structured-output schema for the extraction response.

    Returns:
        Schema dictionary in the model API's OpenAPI subset
    """
    return INVOICE_RESPONSE_SCHEMA
