"""Atlas authentication and onboarding API."""
