"""Prompt templates for documentation translation."""

from __future__ import annotations

from docs_translator.translator.language import language_name

SYSTEM_PROMPT_TEMPLATE = """\
# ROLE
You are an expert technical translator specializing in software documentation.

# TASK
Translate the provided content from {source} to {target} with precision and technical accuracy.

# PRESERVATION RULES
1. **Structure**: Keep ALL Markdown syntax, HTML and JSX tags, code fences, frontmatter and line breaks exactly as written.
2. **Code**: Keep code examples, variable names, function names, URLs and file paths unchanged.
3. **Completeness**: Translate every piece of prose. Do not add, remove or summarise anything.
4. **Whitespace**: Keep blank lines and list indentation. Keep the trailing newline if the input has one.

## Translate
- Prose, headings, list items and table cells
- Code comments and user-facing string literals
- Alt text, titles and frontmatter values meant for readers

## Do NOT translate
- Frontmatter keys, anchors like {{/*some-id*/}}, component names
- Technical terms that are not in the glossary

# OUTPUT
Return ONLY the translated content: no preamble, no explanation, no wrapping code fence.
{glossary}"""

GLOSSARY_SECTION = """
# TERMINOLOGY GLOSSARY
Apply these exact translations for the listed terms:
{glossary}
"""

CONTEXT_SECTION = """\
<previous_context>
The following text comes right before the content to translate. It is for
context only. Do NOT translate or repeat it.

{context}
</previous_context>

"""

CONNECTIVITY_SYSTEM_PROMPT = "Reply with the single word: ok"


def build_system_prompt(
    source_language: str, target_language: str, glossary: str | None = None
) -> str:
    glossary_block = GLOSSARY_SECTION.format(glossary=glossary.strip()) if glossary else ""
    return SYSTEM_PROMPT_TEMPLATE.format(
        source=language_name(source_language),
        target=language_name(target_language),
        glossary=glossary_block,
    )


def build_user_prompt(content: str, context: str = "") -> str:
    """Content to translate, optionally preceded by read-only context."""
    if not context:
        return content
    return CONTEXT_SECTION.format(context=context) + content
