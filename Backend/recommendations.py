import logging
from typing import List

from ai_gateway import create_gateway_client, gateway_model
from models import SSLResult, HeadersResult, VulnerabilityResult

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 5

SYSTEM_INSTRUCTION = "You are a cybersecurity expert providing actionable security recommendations."

GOOD_PRACTICES_MESSAGE = "Your website has good security practices. Continue monitoring regularly."


def generate_basic_recommendations(
    score: int,
    ssl: SSLResult,
    headers: HeadersResult,
    vulnerabilities: VulnerabilityResult
) -> List[str]:
    """Rule-based recommendations, one per failing check."""
    recommendations = []

    if not ssl.valid:
        recommendations.append(
            "Install a valid SSL/TLS certificate immediately to secure data transmission"
        )

    if headers.missing:
        recommendations.append(
            f"Add missing security headers: {', '.join(headers.missing[:3])}"
        )

    if vulnerabilities.xss:
        recommendations.append(
            "Implement input validation and output encoding to prevent XSS attacks"
        )

    if vulnerabilities.sqli:
        recommendations.append(
            "Use parameterized queries and prepared statements to prevent SQL injection"
        )

    if score < 80:
        recommendations.append(
            "Conduct a comprehensive security audit to identify additional vulnerabilities"
        )

    return recommendations or [GOOD_PRACTICES_MESSAGE]


class RecommendationGenerator:
    """
    Turns scan findings into prose recommendations via the hosted AI gateway.

    Modes:
    - AI → single-turn chat completion, reply trimmed to 5 non-empty lines
    - RULES → no credential configured, rule-based list only

    Any failure on the AI path falls back to the rule-based list. There are
    no retries.
    """

    def __init__(self):
        self.client = create_gateway_client()
        self.model = gateway_model()
        self.mode = "AI" if self.client is not None else "RULES"

    def _construct_prompt(
        self,
        url: str,
        score: int,
        ssl: SSLResult,
        headers: HeadersResult,
        vulnerabilities: VulnerabilityResult
    ) -> str:
        return f"""You are a cybersecurity expert. Based on this security scan, provide 3-5 prioritized, actionable recommendations:

URL: {url}
Security Score: {score}/100
SSL Valid: {"true" if ssl.valid else "false"}
Missing Headers: {", ".join(headers.missing)}
XSS Vulnerability: {"Yes" if vulnerabilities.xss else "No"}
SQL Injection Risk: {"Yes" if vulnerabilities.sqli else "No"}

Provide concise, specific recommendations. Each should be one clear sentence."""

    async def generate(
        self,
        url: str,
        score: int,
        ssl: SSLResult,
        headers: HeadersResult,
        vulnerabilities: VulnerabilityResult
    ) -> List[str]:
        fallback = generate_basic_recommendations(score, ssl, headers, vulnerabilities)

        if self.client is None:
            return fallback

        prompt = self._construct_prompt(url, score, ssl, headers, vulnerabilities)

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_INSTRUCTION},
                    {"role": "user", "content": prompt}
                ]
            )
            content = response.choices[0].message.content or ""
        except Exception as e:
            logger.error(f"Error generating AI recommendations: {type(e).__name__}: {e}")
            return fallback

        # Lines are passed through verbatim, no shape validation
        lines = [line for line in content.split("\n") if line.strip()]
        recommendations = lines[:MAX_RECOMMENDATIONS]

        if not recommendations:
            logger.warning("AI gateway returned an empty reply, using rule-based recommendations")
            return fallback

        return recommendations
