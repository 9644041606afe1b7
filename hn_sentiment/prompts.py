"""
AI prompt templates for Hacker News comment sentiment analysis.

Templates use ``{{name}}`` placeholders and are meant to be user-editable, so
rendering never fails: a placeholder without a value renders as an empty string.
"""

import html
import re
from typing import List, Mapping, Optional

from hn_sentiment.models.thread_models import CommentNode, HNPost


DEFAULT_QUESTION_PROMPT_TEMPLATE = """Given this Hacker News post title and context, generate a clear statement that commenters might agree or disagree with. The statement should capture the main claim or topic being discussed.

Title: {{title}}
{{body_section}}{{url_section}}{{top_comments_section}}

Respond with ONLY the statement, no quotes, no explanation. Make it a declarative statement that can be evaluated as agree/disagree.

Examples of good statements:
- "Remote work is more productive than office work"
- "This new JavaScript framework solves real problems"
- "The author's approach to database design is sound\""""

DEFAULT_ANALYSIS_PROMPT_TEMPLATE = """Analyze this Hacker News comment for sentiment regarding: "{{sentiment_question}}"

Comment:
\"\"\"
{{comment_text}}
\"\"\"

Respond with JSON only, no markdown:
{
  "sentiment": "promoter" | "neutral" | "detractor",
  "npsScore": 0-10 integer,
  "summary": "1-2 sentence summary of the comment's main point",
  "keywords": []
}

Guidelines:
- sentiment: promoter (agrees/supports), neutral (neither/off-topic), detractor (disagrees/opposes)
- npsScore: integer 0-10 reflecting sentiment intensity about the statement
  - 9-10 = promoter, 7-8 = neutral, 0-6 = detractor
- summary: Brief factual summary of the main point
- keywords: 0-5 unique key phrases that provide insight into the commenter's perspective. Only include meaningful phrases, not generic words."""

DEFAULT_THREAD_SUMMARY_PROMPT_TEMPLATE = """Write a concise top-level summary of Hacker News thread sentiment.

Sentiment question:
{{sentiment_question}}

Analysis stats:
- analyzed: {{analyzed_count}} of {{analyzable_count}} analyzable comments
- nps-style score: {{nps_score}} (promoters {{promoters}}, neutral {{neutrals}}, detractors {{detractors}})
- top keyword phrases: {{top_keywords}}

Requirements:
- 2-4 sentences
- capture overall stance and uncertainty/divergence
- mention 2-4 major themes from keywords
- do not invent details not supported by the data
- plain text only"""

_PLACEHOLDER = re.compile(r'\{\{([a-z0-9_]+)\}\}', re.IGNORECASE)

# Truncation length for context snippets (post body, top comments)
SNIPPET_LENGTH = 200


def render_prompt_template(template: str, values: Mapping[str, object]) -> str:
    """Substitute ``{{name}}`` placeholders with values.

    Unknown placeholders render as an empty string. Values are converted with
    str(); None renders as an empty string.

    Example:
        >>> render_prompt_template("Hi {{name}}{{missing}}!", {"name": "pg"})
        'Hi pg!'
    """
    def substitute(match: re.Match) -> str:
        value = values.get(match.group(1))
        return '' if value is None else str(value)

    return _PLACEHOLDER.sub(substitute, template)


def strip_html(text: Optional[str]) -> str:
    """Convert an HN HTML body into plain text.

    Paragraph tags become blank lines, other tags are removed and entities are
    decoded (e.g. ``&#x27;`` -> ``'``).
    """
    if not text:
        return ''
    clean = re.sub(r'<p>', '\n\n', text, flags=re.IGNORECASE)
    clean = re.sub(r'<[^>]+>', '', clean)
    clean = html.unescape(clean)
    clean = re.sub(r'[ \t]+', ' ', clean)
    clean = re.sub(r'\n{3,}', '\n\n', clean)
    return clean.strip()


def truncate(text: str, limit: int = SNIPPET_LENGTH) -> str:
    """Truncate long text to ``limit`` characters with a trailing ellipsis."""
    if len(text) > limit:
        return text[:limit - 3] + "..."
    return text


def build_analysis_prompt(
    sentiment_question: str,
    comment_text: str,
    template: str = DEFAULT_ANALYSIS_PROMPT_TEMPLATE
) -> str:
    """Build the per-comment analysis prompt from the HTML comment body."""
    return render_prompt_template(template, {
        'sentiment_question': sentiment_question,
        'comment_text': strip_html(comment_text),
    })


def build_question_prompt(
    post: HNPost,
    top_comments: List[CommentNode],
    template: str = DEFAULT_QUESTION_PROMPT_TEMPLATE
) -> str:
    """Build the prompt asking the model for an agree/disagree statement.

    Optional sections (body, url, top comments) are omitted entirely when empty.
    Each snippet is truncated to ~200 characters to manage prompt tokens.
    """
    body = strip_html(post.text)
    body_section = f"Body: {truncate(body)}\n" if body else ''
    url_section = f"URL: {post.url}\n" if post.url else ''

    comment_lines = []
    for comment in top_comments:
        text = strip_html(comment.text)
        if not text or comment.deleted or comment.dead:
            continue
        comment_lines.append(f"- {comment.author}: {truncate(text)}")
    top_comments_section = (
        "Top comments:\n" + "\n".join(comment_lines) + "\n" if comment_lines else ''
    )

    return render_prompt_template(template, {
        'title': post.title,
        'body_section': body_section,
        'url_section': url_section,
        'top_comments_section': top_comments_section,
    })
