"""Typed views over the documents in the job-finder-config collection."""

from typing import List

from pydantic import BaseModel, Field

from jobfinder_sync.models.firestore_types import JobFinderConfigDoc

STOP_LIST_ID = "stop-list"
QUEUE_SETTINGS_ID = "queue-settings"
AI_SETTINGS_ID = "ai-settings"
AI_PROMPTS_ID = "ai-prompts"

# Fields stamped by the store or the service, never taken from callers
AUDIT_FIELDS = {"id", "createdAt", "updatedAt", "updatedBy"}


class StopList(JobFinderConfigDoc):
    """Companies, keywords and domains the workers must skip."""

    excludedCompanies: List[str] = Field(default_factory=list)
    excludedKeywords: List[str] = Field(default_factory=list)
    excludedDomains: List[str] = Field(default_factory=list)


class QueueSettings(JobFinderConfigDoc):
    maxRetries: int = 3
    retryDelaySeconds: int = 300
    processingTimeout: int = 600


class AISettings(JobFinderConfigDoc):
    provider: str = "claude"
    model: str = "claude-sonnet-4"
    minMatchScore: float = 70
    costBudgetDaily: float = 10.0


DEFAULT_RESUME_PROMPT = """You are an expert resume writer. Generate a professional resume based on the following information:

Job Description: {{jobDescription}}
Job Title: {{jobTitle}}
Company: {{companyName}}

User Experience:
{{userExperience}}

User Skills:
{{userSkills}}

Additional Instructions: {{additionalInstructions}}

Create a tailored resume that highlights relevant experience and skills for this specific role."""

DEFAULT_COVER_LETTER_PROMPT = """You are an expert cover letter writer. Generate a compelling cover letter based on:

Job Description: {{jobDescription}}
Job Title: {{jobTitle}}
Company: {{companyName}}

User Experience:
{{userExperience}}

Match Reason: {{matchReason}}

Additional Instructions: {{additionalInstructions}}

Write a personalized cover letter that demonstrates enthusiasm and fit for the role."""

DEFAULT_JOB_SCRAPING_PROMPT = """Extract job posting information from the provided HTML content.

HTML Content: {{htmlContent}}

Extract and return structured data including:
- Job Title
- Company Name
- Location
- Job Type (Full-time, Part-time, Contract, etc.)
- Salary Range (if available)
- Job Description
- Required Skills
- Qualifications
- Benefits

Return the data in JSON format."""

DEFAULT_JOB_MATCHING_PROMPT = """Analyze the job match score and provide reasoning.

Job Description: {{jobDescription}}
User Resume: {{userResume}}
User Skills: {{userSkills}}

Evaluate:
1. Skills alignment (technical and soft skills)
2. Experience relevance
3. Role fit
4. Growth potential

Provide:
- Match score (0-100)
- Match reason (why this is a good fit)
- Strengths (what makes the candidate strong)
- Concerns (potential gaps or mismatches)
- Customization recommendations (what to emphasize)"""


class PromptConfig(JobFinderConfigDoc):
    """Prompt templates used by the generator and matching workers.

    Templates reference inputs as ``{{variableName}}``.
    """

    resumeGeneration: str = DEFAULT_RESUME_PROMPT
    coverLetterGeneration: str = DEFAULT_COVER_LETTER_PROMPT
    jobScraping: str = DEFAULT_JOB_SCRAPING_PROMPT
    jobMatching: str = DEFAULT_JOB_MATCHING_PROMPT


class PromptValidation(BaseModel):
    valid: bool
    missing: List[str] = Field(default_factory=list)
