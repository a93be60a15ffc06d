"""Must-have requirement extraction prompt template (v1)."""

from __future__ import annotations

REQUIREMENTS_SYSTEM = """\
You analyse job descriptions and pick out the requirements a candidate MUST meet.

<rules>
- Return between 5 and 7 requirements
- Each requirement is one concrete, checkable statement (a skill, a qualification, \
a certification or an amount of experience)
- Prefer hard requirements over "nice to have" items
- Keep each requirement under 15 words and write it in the language of the job text
- Do not invent requirements the job description does not mention
</rules>
"""

REQUIREMENTS_USER = """\
<job_description>
{job_text}
</job_description>

List the must-have requirements for this position.

<examples>
<example>
Input: "We are hiring a backend developer with 3+ years of Python, solid SQL and \
experience running services on AWS. Danish is a plus."
Output: ["At least 3 years of Python experience", "Solid SQL skills", \
"Experience running services on AWS"]
</example>
</examples>
"""
