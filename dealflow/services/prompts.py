# prompts.py

# --- Research summarization ---
summarize_prompt = """Summarize the following research details into a concise paragraph:

{text}

Summary:"""

# --- Risk assessment ---
risk_prompt = """Evaluate the following investment thesis and provide a risk assessment including key risk factors, mitigation strategies, and a risk score (1=low, 10=high):

{thesis}

Risk Assessment:"""

# --- Next-step recommendations ---
recommendation_prompt = """Based on the following investment thesis and risk assessment, provide recommendations for next steps (such as due diligence areas, questions for founders, or follow-up actions):

Thesis: {thesis}
Risk Assessment: {risk}

Recommendations:"""

# --- Scoring ---
score_prompt = """Evaluate the following investment idea and provide a single numeric score between 1 (poor) and 10 (excellent) that represents its potential:

"{topic}"

Score:"""

# --- Intent recognition for free-form mentions ---
intent_prompt = """You are an assistant integrated into a DAO's Telegram channel. Analyze the following message and return a JSON object with two keys: "intent" and "query". Valid intents:
- "investment_query" (questions about investment ideas, risk, or due diligence),
- "general_info" (questions about DAO operations or membership),
- "search_query" (questions needing live information),
- "other" (if no specific intent is recognized).

Respond ONLY with the JSON object, no markdown.

Message: "{message}"

JSON:"""

# --- Direct investment questions ---
investment_answer_prompt = """Answer this investment-related question: {query}"""
