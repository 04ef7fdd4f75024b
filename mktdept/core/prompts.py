"""Built-in transform prompts, selected by a stage's platform hint."""

LINKEDIN_PROMPT = (
    "Transform this blog post into a professional LinkedIn post. "
    "Keep it engaging and insightful. Use appropriate line breaks for readability. "
    "Include 3-5 relevant hashtags at the end. Keep the tone professional but personable."
)

TWITTER_PROMPT = (
    "Transform this blog post into a compelling tweet or thread. "
    "If the content is substantial, create a thread with numbered tweets. "
    "Keep each tweet under 280 characters. Make it punchy and engaging. "
    "Include 2-3 relevant hashtags."
)

INSTAGRAM_PROMPT = (
    "Transform this blog post into an Instagram caption. "
    "Open with a strong hook in the first line, keep paragraphs short, "
    "use a few well-placed emojis, and finish with a call to action. "
    "Add 5-10 relevant hashtags at the end."
)

FACEBOOK_PROMPT = (
    "Transform this blog post into a Facebook post. "
    "Keep it conversational and approachable, summarize the key takeaway in the first two sentences, "
    "and end with a question that invites comments. Use at most 2 hashtags."
)

THREADS_PROMPT = (
    "Transform this blog post into a Threads post. "
    "Keep it short, casual and opinionated, under 500 characters. "
    "Avoid hashtags unless one is essential."
)

BLUESKY_PROMPT = (
    "Transform this blog post into a Bluesky post. "
    "Stay under 300 characters, lead with the most interesting insight, "
    "and keep the tone friendly and direct."
)

FACEBOOK_COPY_PASTA_PROMPT = (
    "Rewrite this blog post as a plain-text Facebook post meant to be copied and pasted by hand. "
    "Do not use markdown, links formatting or hashtags. Use short paragraphs separated by blank lines, "
    "a personal first-person tone, and keep it under 1500 characters."
)

HACKER_NEWS_PROMPT = (
    "Rewrite this blog post for a Hacker News audience. "
    "Remove marketing language and superlatives, lead with the technical substance, "
    "state trade-offs and limitations plainly, and keep the original markdown structure "
    "with the title as the first # header."
)

DEVTO_PROMPT = (
    "Transform this blog post for publication on Dev.to, a developer community platform.\n\n"
    "Guidelines:\n"
    "- Keep the technical accuracy and depth\n"
    "- Use code blocks with language identifiers (```java, ```python, etc.)\n"
    "- Add a brief, engaging introduction that hooks developers\n"
    "- Structure with clear headings (## and ###)\n"
    "- Include practical examples where relevant\n"
    "- End with a conclusion or call-to-action\n"
    "- Keep the tone professional but conversational\n"
    "- Do not add front matter - just return the markdown content\n"
)

GENERIC_SOCIAL_PROMPT = (
    "Transform this blog post into an engaging social media post for the target platform. "
    "Keep the key message, make the opening line attention-grabbing, "
    "and include 2-3 relevant hashtags."
)

PLATFORM_PROMPTS = {
    "linkedin": LINKEDIN_PROMPT,
    "twitter": TWITTER_PROMPT,
    "x": TWITTER_PROMPT,
    "instagram": INSTAGRAM_PROMPT,
    "facebook": FACEBOOK_PROMPT,
    "threads": THREADS_PROMPT,
    "bluesky": BLUESKY_PROMPT,
    "facebook_copy_pasta": FACEBOOK_COPY_PASTA_PROMPT,
    "hackernews": HACKER_NEWS_PROMPT,
    "hn": HACKER_NEWS_PROMPT,
    "devto": DEVTO_PROMPT,
}


def default_prompt_for(platform_hint: str | None) -> str:
    if not platform_hint:
        return GENERIC_SOCIAL_PROMPT
    return PLATFORM_PROMPTS.get(platform_hint.strip().lower(), GENERIC_SOCIAL_PROMPT)
