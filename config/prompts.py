"""
Prompt templates for the campus query assistant.

This module contains:
- The system prompt used for answer synthesis
- The classification prompt used when fuzzy matching is unsure
- The tool selection prompt
- The synthesis prompt and its formatting instructions

All prompts should be maintained here (not hardcoded in core/tools).
Literal JSON braces in templates are doubled for str.format.
"""

from .settings import ASSISTANT_NAME, INSTITUTION_NAME

# ============================================================================
# SYSTEM PROMPT
# ============================================================================

SYSTEM_PROMPT = f"""You are {ASSISTANT_NAME}, an intelligent assistant for students of {INSTITUTION_NAME}.

Instructions:
- Answer the user's question based ONLY on the provided context.
- If the answer is not in the context, say you don't know, or provide general advice if safely possible.
- Never invent grades, payments, dates or course codes.
- Be helpful, concise, and professional."""

# ============================================================================
# CLASSIFICATION PROMPT (LLM fallback)
# ============================================================================

CLASSIFIER_PROMPT = """You are a query classifier for a university student portal. Classify the following query.

Query: "{query}"

Available tools for private student data:
{tool_list}

Known intents: {intent_names}

Respond with ONLY a JSON object:
{{
  "queryType": "PUBLIC" | "PRIVATE" | "MIXED",
  "intents": ["intent1", "intent2"],
  "suggestedTools": ["tool_name"] or [],
  "confidence": 0.0-1.0
}}"""

# ============================================================================
# TOOL SELECTION PROMPT
# ============================================================================

TOOL_SELECTION_PROMPT = """You are an AI assistant helping a student with their academic queries.

The user asked: "{query}"

Available tools you can use to fetch private student data:
{tools_description}

Based on the user's query, determine which tool(s) you need to call. Respond ONLY with a JSON array of tool calls in this exact format:
[
  {{
    "name": "tool_name",
    "parameters": {{
      "param1": "value1"
    }}
  }}
]

If no tools are needed, respond with an empty array: [].

Query type: {query_type}
Respond with JSON only, no additional text."""

# ============================================================================
# SYNTHESIS PROMPT
# ============================================================================

SYNTHESIS_PROMPT = """The user asked: "{query}"

{context_section}

CRITICAL INSTRUCTIONS:
1. DO NOT output the raw data as-is
2. Transform the data into a well-structured, professional, and easy-to-read response
3. If some information could not be retrieved, answer with what is available without mentioning technical errors
4. {format_instructions}"""

DATA_SECTION = """Here is the JSON data retrieved for this question:
{data}"""

NO_DATA_SECTION = """No structured data was found for this question. Answer from general knowledge only if it is safe to do so, otherwise say that the information is not available and suggest where the student could look."""

FORMAT_INSTRUCTIONS = """FORMATTING REQUIREMENTS:
- Use clear markdown headings (##, ###) to organize sections
- Format lists using proper markdown list syntax with proper line breaks
- Use bold text (**text**) for important information like course codes, grades, and statuses
- Group related information together (e.g., current semester vs previous semester)
- Be conversational and helpful, not just a data dump
- Highlight key information (GPA, status, important dates)
- DO NOT output raw data in a single line - break it into readable sections"""

TABLE_FORMAT_INSTRUCTIONS = """FORMAT AS TABLE:
- Create a markdown table with appropriate columns
- Use | for table structure
- Include headers for all relevant fields
- Make it easy to scan and compare data"""

# Phrases that switch the synthesis prompt to table formatting
TABLE_REQUEST_KEYWORDS = ("table", "tabular")

# ============================================================================
# USER-FACING MESSAGES
# ============================================================================

NO_INFORMATION_MESSAGE = (
    "I couldn't find information about \"{query}\". "
    "Try rephrasing your question or ask about grades, payments, attendance, "
    "courses, electives or the academic calendar."
)

AUTHENTICATION_REQUIRED_MESSAGE = "Authentication required for private queries"


# ============================================================================
# UTILITIES
# ============================================================================

def format_prompt(template: str, **kwargs) -> str:
    """
    Format a prompt template with provided variables.

    Args:
        template: Prompt template string with {placeholders}
        **kwargs: Variables to substitute into the template

    Returns:
        Formatted prompt string
    """
    try:
        return template.format(**kwargs)
    except KeyError as e:
        raise ValueError(f"Missing required prompt variable: {e}")
