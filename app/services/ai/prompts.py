"""Prompt templates and instructions for storybook generation."""

STORYBOOK_SYSTEM_PROMPT = """You are a creative children's story writer.
You write short, warm, age-appropriate picture-book stories and describe an
illustration for every page. You always answer with a single JSON object and
never add introductory text."""

LEXICOGRAPHER_SYSTEM_PROMPT = """You are an expert lexicographer specializing in
providing contextual definitions for young readers. You always answer with a
single JSON object."""

SIMILAR_STORIES_SYSTEM_PROMPT = """You are a creative story writer. Every story you
write is engaging and suitable for children. You always answer with a single
JSON object."""

# Sentence guidance per age group
AGE_GROUP_GUIDANCE = {
    "3-5": "Use very simple words and short sentences a preschooler can follow.",
    "6-8": "Use easy vocabulary with a little description for early readers.",
    "9-12": "Use richer vocabulary and a clear plot with some suspense.",
}


def build_storybook_prompt(prompt: str, age_group: str, theme: str, page_count: int) -> str:
    """
    Build the story-writing prompt.

    Args:
        prompt: The user's story idea
        age_group: Target age group label
        theme: Theme label
        page_count: Exact number of pages required

    Returns:
        Prompt text asking for ``{"title", "pages": [{"text", "imagePrompt"}]}``
    """
    guidance = AGE_GROUP_GUIDANCE.get(age_group, AGE_GROUP_GUIDANCE["6-8"])
    return f"""Generate a short story based on the following prompt.
The story should be appropriate for the age group: {age_group}. {guidance}
The theme of the story should be: {theme}.
The story must be exactly {page_count} pages long.

Prompt: {prompt}

Please provide a title for the whole story.
For each of the {page_count} pages, please do the following:
1. Story Text: Write 2-4 short sentences of engaging story text. This will be the "text" field for the page.
2. Illustration Prompt: Write a concise, one-sentence description for a vivid and imaginative illustration that matches the story text. Focus on the main characters, action, and setting. This will be the "imagePrompt" field for the page.

The final output must be a JSON object with a "title" and a "pages" array of exactly {page_count} objects.
Each object in the "pages" array must have a "text" and an "imagePrompt" field.""".strip()


def build_definition_prompt(word: str, context: str) -> str:
    """Build the prompt for a child-friendly definition of a word in context."""
    return f"""Use the context provided to define the word in a way that is easy for a young reader to understand.
Your response MUST be a JSON object with a single key "definition".

Word: {word}
Context: {context}"""


def build_similar_stories_prompt(story_text: str, num_stories: int) -> str:
    """Build the prompt for stories similar to an existing one."""
    return f"""Please generate {num_stories} similar stories based on the following story. Each story should be engaging.

Your final output must be a JSON object with a "stories" array, where each element is one of the generated stories as a string.

Original Story:
{story_text}"""


def build_illustration_prompt(scene: str, theme: str, style: str) -> str:
    """Combine scene, theme and style labels into one image prompt."""
    return f"A {style} of {scene}. Theme: {theme}."
