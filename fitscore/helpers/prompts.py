from fitscore.models.models import DocumentKind

DEFAULT_MAX_CHARS = 4000


def truncate(text: str, max_chars: int = DEFAULT_MAX_CHARS) -> str:
    text = (text or "").strip()
    return text[:max_chars]


JD_SUMMARY_PROMPT = """You are an expert technical recruiter.
Summarize the job description below. Do NOT score anything and do NOT return JSON.
Use exactly these labeled sections, one per line, each followed by a short plain-text answer
(use "Not specified" when the description says nothing):

ROLE:
REQUIRED SKILLS:
REQUIRED EXPERIENCE:
EDUCATION REQUIREMENTS:
RESPONSIBILITIES:

JOB DESCRIPTION:
{jd_text}
"""

PROFILE_SUMMARY_PROMPT = """You are an expert career counselor.
Summarize the candidate {document_label} below. Do NOT score anything and do NOT return JSON.
Use exactly these labeled sections, one per line, each followed by a short plain-text answer
(use "Not specified" when the document says nothing):

SKILLS:
EXPERIENCE:
EDUCATION:
ACHIEVEMENTS:
DOMAIN EXPERTISE:

CANDIDATE {document_heading}:
{candidate_text}
"""

SCORING_PROMPT = """You are an expert career counselor and recruiter. Compare the candidate summary against the
job description summary and score the match.

SCORING CRITERIA (weights):
- Technical Skills Match (30%): how well the candidate's skills align with the required skills
- Experience Match (25%): does the experience level and type match the role
- Education & Qualifications (15%): are educational requirements met
- Industry/Domain Fit (15%): relevant industry and domain experience
- Soft Skills (10%): leadership, teamwork, communication
- Growth Potential (5%): ability to grow into the role

Breakdown ceilings: technical_skills 0-30, experience 0-25, education 0-15, domain_fit 0-15,
soft_skills 0-10, growth_potential 0-10.

OUTPUT REQUIREMENTS:
Return ONLY a single valid JSON object, with no text before or after it and no markdown code fences,
with exactly this shape:
{{
  "score": <integer between 0 and 100>,
  "reasoning": "<single concise sentence explaining the score>",
  "breakdown": {{
    "technical_skills": <integer 0-30>,
    "experience": <integer 0-25>,
    "education": <integer 0-15>,
    "domain_fit": <integer 0-15>,
    "soft_skills": <integer 0-10>,
    "growth_potential": <integer 0-10>
  }},
  "gaps": ["<requirement the candidate does not demonstrate>", "..."],
  "suggestions": [
    "<specific actionable improvement suggestion 1>",
    "<specific actionable improvement suggestion 2>",
    "<specific actionable improvement suggestion 3>",
    "<specific actionable improvement suggestion 4>",
    "<specific actionable improvement suggestion 5>"
  ]
}}

IMPORTANT:
- Provide exactly 5 specific, actionable suggestions
- Make suggestions specific to the role and the candidate's profile
- Be constructive; focus on improvements that would increase the match score

JOB DESCRIPTION SUMMARY:
{jd_summary}

CANDIDATE SUMMARY:
{profile_summary}
"""


def build_jd_summary_prompt(jd_text: str, max_chars: int = DEFAULT_MAX_CHARS) -> str:
    return JD_SUMMARY_PROMPT.format(jd_text=truncate(jd_text, max_chars))


def build_profile_summary_prompt(candidate_text: str, kind: DocumentKind = DocumentKind.RESUME,
                                 max_chars: int = DEFAULT_MAX_CHARS) -> str:
    if kind == DocumentKind.NETWORK_PROFILE:
        label, heading = "professional-network profile export", "PROFILE"
    else:
        label, heading = "resume", "RESUME"
    return PROFILE_SUMMARY_PROMPT.format(
        document_label=label,
        document_heading=heading,
        candidate_text=truncate(candidate_text, max_chars),
    )


def build_scoring_prompt(jd_summary: str, profile_summary: str, max_chars: int = DEFAULT_MAX_CHARS) -> str:
    """The scoring stage only sees the two summaries, never the raw documents."""
    return SCORING_PROMPT.format(
        jd_summary=truncate(jd_summary, max_chars),
        profile_summary=truncate(profile_summary, max_chars),
    )
