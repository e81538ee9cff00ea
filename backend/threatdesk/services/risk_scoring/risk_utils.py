def risk_level(
    score: int,
    critical: int = 75,
    high: int = 50,
    medium: int = 25,
) -> str:
    """Map an abuse confidence score (0-100) to low/medium/high/critical."""
    if score >= critical:
        return "critical"
    if score >= high:
        return "high"
    if score >= medium:
        return "medium"
    return "low"
