from models import SSLResult, HeadersResult, VulnerabilityResult

SSL_PENALTY = 20
HEADER_PENALTY_EACH = 5
HEADER_PENALTY_CAP = 25
XSS_PENALTY = 15
SQLI_PENALTY = 15


def header_penalty(missing_count: int) -> int:
    return min(HEADER_PENALTY_CAP, HEADER_PENALTY_EACH * missing_count)


def calculate_security_score(
    ssl: SSLResult,
    headers: HeadersResult,
    vulnerabilities: VulnerabilityResult
) -> int:
    """
    Fixed point-deduction score in [0, 100].

    CSRF, DNS and WHOIS results are never factored in. A probe that degraded
    silently is scored as if it passed.
    """
    score = 100

    if not ssl.valid:
        score -= SSL_PENALTY

    score -= header_penalty(len(headers.missing))

    if vulnerabilities.xss:
        score -= XSS_PENALTY
    if vulnerabilities.sqli:
        score -= SQLI_PENALTY

    return max(0, min(100, int(round(score))))
