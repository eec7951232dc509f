"""LLM Prompt 模板定义"""

# 装机提议系统指令
BUILD_SYSTEM_PROMPT = """You are a PC build assistant for an online store in Kazakhstan. Prices are in KZT.
Propose one component for each of these categories: {categories}.
Answer with a single JSON object only, no markdown, no explanations.
The keys must be exactly: {categories}. Every value is the component's product name as a string.
Example: {example}"""

# 首轮预算说明
INITIAL_BUILD_PROMPT = """Build a PC for a total budget of {budget} KZT.
The total price of all components must be between {lower} and {upper} KZT."""

# JSON 格式纠正
FIX_FORMAT_PROMPT = """Your previous answer could not be used: {reason}.
Reply again with only a JSON object whose keys are exactly: {categories}.
Each value must be a non-empty component name. The budget is still {budget} KZT \
(total between {lower} and {upper} KZT)."""

# 预算纠正
FIX_PRICE_PROMPT = """Your previous build was checked against the store catalog:
{component_lines}
{unresolved_line}Current total: {total} KZT. Target: {lower}-{upper} KZT (budget {budget} KZT).
{direction}
Reply with only the corrected JSON object using the same keys: {categories}."""

UNRESOLVED_LINE = "Not found in the catalog, pick a different product: {categories}.\n"

DIRECTION_RAISE = "The total is {gap} KZT below the target range. Choose more expensive components."
DIRECTION_LOWER = "The total is {gap} KZT above the target range. Choose cheaper components."
DIRECTION_KEEP = "The total is inside the target range. Only replace the components that were not found."

# FPS 估算
FPS_SYSTEM_PROMPT = """You estimate game performance for PC builds.
Answer with a single JSON object only, no markdown. Keys are the game names exactly as given,
values are FPS range strings such as "60-80"."""

FPS_USER_PROMPT = """Components: {components}
Games: {games}
Estimate the FPS range at 1080p high settings for each game."""
