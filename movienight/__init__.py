"""
Family Movie Night - Source Package

This package contains the core functionality for the family movie night app:
- rating_aggregation: Family and Adult/Kid rating averages
- library_filter: Title search and release-era filtering
- recommendation_requests: Gemini prompts and response validation
- gemini_client: Generative-text API calls
- metadata_lookup: TMDB posters and ids
- library_store: Firestore library, live subscription and app context
- config: Environment and Streamlit secrets settings
- utils: Roster, labels and other constants
"""
