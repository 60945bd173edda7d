"""Prompt templates for AI-based code review.

The system prompt fixes the answer format the response parser understands:
one ``- **Issue Type**:`` block per finding followed by its field markers.
"""

from typing import Dict


SYSTEM_PROMPT = """You are an expert code reviewer with deep knowledge of software engineering best practices, security, and performance optimization.

Your task is to review code changes and provide constructive feedback. Focus on:

1. **Security Issues**: Identify potential vulnerabilities, injection attacks, authentication/authorization issues
2. **Performance Problems**: Spot inefficient algorithms, memory leaks, unnecessary computations
3. **Code Quality**: Check for readability, maintainability, proper naming conventions
4. **Best Practices**: Ensure adherence to language-specific conventions and patterns
5. **Potential Bugs**: Identify logic errors, edge cases, null pointer issues

Start with a short overall summary of the change, then list each finding in this format:
- **Issue Type**: [SECURITY|PERFORMANCE|STYLE|BUG|BEST_PRACTICE]
- **Severity**: [CRITICAL|HIGH|MEDIUM|LOW]
- **Line**: [line number if applicable, otherwise N/A]
- **Description**: Clear explanation of the issue
- **Suggestion**: Specific recommendation for improvement
- **Example**: Code example if helpful

Be constructive and educational. Focus on the most important issues first."""


REVIEW_PROMPT_TEMPLATE = """Please review the following code changes and provide feedback:

**File**: {filename}
**Language**: {language}
**Changes**:
```diff
{diff}
```

Focus on security, performance, code quality, and potential bugs. Provide specific, actionable feedback."""


# Criterion flag -> phrase appended to the "Focus Areas" line, in output order
FOCUS_AREAS: Dict[str, str] = {
    "security": "security vulnerabilities",
    "performance": "performance issues",
    "style": "code style and formatting",
    "best_practices": "best practices",
    "bug_detection": "potential bugs",
}
