# app/testplan/providers/prompt.py
from app.testplan.schemas import GenerationContext

SYSTEM_PROMPT = """You are an expert QA Engineer with extensive experience in test plan creation.

Your task is to generate comprehensive, professional test plans based on JIRA tickets and provided templates.

Guidelines:
- Be thorough and detail-oriented
- Consider both happy path and edge cases
- Include specific, actionable test steps
- Use clear, professional language
- Follow software testing best practices
- Ensure test coverage for all acceptance criteria

Output format: Markdown
Tone: Professional, technical, clear"""

_INSTRUCTIONS = """## Instructions

1. Analyze the JIRA ticket thoroughly
2. Map ticket details to appropriate sections in the template
3. Generate specific test cases based on acceptance criteria
4. Include both positive and negative test scenarios
5. Add edge cases where applicable
6. Maintain the template's formatting and structure
7. Use Markdown format for the output
8. Be comprehensive but concise

Generate the complete test plan now:"""


def build_prompt(context: GenerationContext) -> str:
    ticket = context.ticket
    labels = ", ".join(ticket.labels) or "None"
    return f"""Generate a comprehensive test plan based on the following JIRA ticket and template structure.

## JIRA Ticket Information

**Ticket ID:** {ticket.key}
**Summary:** {ticket.summary}
**Priority:** {ticket.priority}
**Status:** {ticket.status}
**Assignee:** {ticket.assignee}

### Description
{ticket.description or "No description provided"}

### Acceptance Criteria
{ticket.acceptance_criteria or "No explicit acceptance criteria provided"}

### Labels
{labels}

## Template Structure

Follow this template structure for your response:

{context.template}

{_INSTRUCTIONS}"""
