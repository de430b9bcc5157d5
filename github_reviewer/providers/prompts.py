"""
Prompt templates shared by every AI provider.

Prompts are built deterministically from their inputs so the same files
always produce the same request.
"""

from typing import Iterable, Optional

from github_reviewer.models import ReviewFile

REVIEW_RUBRIC = (
    "Code quality and readability",
    "Adherence to best practices and coding standards",
    "Performance and efficiency",
    "Error handling and robustness",
    "Security vulnerabilities",
    "Maintainability and scalability",
)

REVIEW_PROMPT = """You are an experienced senior software engineer with over 15 years of experience in {language} development. Your role is to review the following {language} code as if you were performing a detailed code review for a production-level project. Please evaluate the code for the following aspects:

{rubric}

Provide a detailed critique of the code along with actionable suggestions for improvement. If applicable, include alternative code snippets or refactoring ideas to enhance overall quality.

The code to review is below:
{files}

Provide your review in JSON format with these fields:
1. comments: Array of objects with fields "path" (string), "body" (string), and "position" (number, optional)
2. summary: Overall review summary
3. approved: boolean indicating if the PR can be approved"""

TEST_PROMPT = """You are a senior programmer and your only job is to generate test cases for the following code file. Use the {framework} testing framework.

Filename: {file_path}

Code:
```
{content}
```

Return only the test code without explanations."""

COMMENT_PROMPT = """You are an AI code reviewer assistant. A developer has replied to one of your code review comments.
Please provide a helpful and constructive response. Be concise, friendly, and focus on helping the developer.

The developer's comment:
\"\"\"
{comment}
\"\"\""""

COMMENT_CONTEXT = """

Here is the code context for this discussion:
```
{context}
```"""

COMMENT_CLOSING = """

Respond to the developer in a helpful, professional manner. Provide clear explanations, code examples if needed, and maintain a collaborative tone."""


def format_review_file(file: ReviewFile) -> str:
    section = f"### {file.filename}\n```\n{file.content}\n```\n"
    if file.patch:
        section += f"Patch: {file.patch}"
    return section


def build_review_prompt(files: Iterable[ReviewFile], language: str) -> str:
    rubric = "\n\n".join(f"    {aspect}" for aspect in REVIEW_RUBRIC)
    return REVIEW_PROMPT.format(
        language=language,
        rubric=rubric,
        files="\n\n".join(format_review_file(f) for f in files),
    )


def build_test_prompt(file_path: str, content: str, framework: str) -> str:
    return TEST_PROMPT.format(framework=framework, file_path=file_path, content=content)


def build_comment_prompt(comment: str, code_context: Optional[str] = None) -> str:
    prompt = COMMENT_PROMPT.format(comment=comment)
    if code_context:
        prompt += COMMENT_CONTEXT.format(context=code_context)
    return prompt + COMMENT_CLOSING
