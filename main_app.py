"""
Family Movie Night - shared movie library with ratings, reviews and AI suggestions
"""

import streamlit as st

from movienight.errors import MovieNightError
from movienight.library_filter import filter_movies
from movienight.library_store import LibrarySubscription, create_app_context
from movienight.models import FilterState
from movienight.rating_aggregation import family_average, format_average, group_average, ratings_table
from movienight.recommendation_requests import (
    GenerateRequest,
    MoreLikeThisRequest,
    RefreshGenresRequest,
    SuggestionTracker,
    promote_suggestions,
    seed_library,
)
from movienight.utils import (
    ERAS,
    FAMILY_MEMBERS,
    INITIAL_GENRES,
    INITIAL_MOODS,
    WATCHED_OPTIONS,
    placeholder_poster_url,
    streaming_search_links,
)

# =============================================================================
# APP CONTEXT
# =============================================================================

@st.cache_resource
def get_app_context():
    """Build the store, TMDB and Gemini clients once per server process."""
    return create_app_context()


@st.cache_resource
def get_library_subscription(_context):
    """Start the live library listener once per server process."""
    return LibrarySubscription(_context.store).start()

# =============================================================================
# SESSION STATE MANAGEMENT
# =============================================================================

def initialize_session_state():
    """Initialize all required session state variables."""

    if "current_user" not in st.session_state:
        st.session_state.current_user = next(iter(FAMILY_MEMBERS))

    # Temporary suggestions, never written to the library directly
    if "recommendations" not in st.session_state:
        st.session_state.recommendations = []

    if "suggestion_tracker" not in st.session_state:
        st.session_state.suggestion_tracker = SuggestionTracker()

    if "filters" not in st.session_state:
        st.session_state.filters = FilterState()

    if "dynamic_genres" not in st.session_state:
        st.session_state.dynamic_genres = list(INITIAL_GENRES)

    if "selected_movie_id" not in st.session_state:
        st.session_state.selected_movie_id = None

    if "error" not in st.session_state:
        st.session_state.error = None

# =============================================================================
# UI STYLING
# =============================================================================

def inject_custom_css():
    """Inject custom CSS for the movie grid."""
    st.markdown("""
    <style>
    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}

    .app-title {
        text-align: center;
        font-size: 2.5rem;
        font-weight: bold;
        margin-bottom: 1rem;
        color: #818cf8;
    }

    .avg-badge {
        display: inline-block;
        background: rgba(0, 0, 0, 0.7);
        color: #facc15;
        font-weight: bold;
        border-radius: 999px;
        padding: 0.1rem 0.6rem;
        font-size: 0.85rem;
    }

    .group-avg {
        color: #9ca3af;
        font-size: 0.8rem;
    }

    .suggestion-note {
        padding: 1rem;
        background-color: rgba(99, 102, 241, 0.1);
        border-radius: 8px;
        color: #c7d2fe;
    }
    </style>
    """, unsafe_allow_html=True)

# =============================================================================
# ACTIONS
# =============================================================================

def run_action(action, *args, **kwargs):
    """Run a store or suggestion action, surfacing failures as a message."""
    try:
        return action(*args, **kwargs)
    except MovieNightError as e:
        st.session_state.error = e.user_message
        return None


def request_suggestions(context, request):
    """Ask for suggestions; only the newest request's answer is kept."""
    tracker = st.session_state.suggestion_tracker
    token = tracker.begin()
    st.session_state.error = None
    with st.spinner(request.progress_message):
        suggestions = run_action(context.recommender.run, request)
    if suggestions is not None and tracker.is_current(token):
        st.session_state.recommendations = suggestions


def refresh_genres(context, movies):
    st.session_state.error = None
    request = run_action(RefreshGenresRequest, movies, base_genres=INITIAL_GENRES)
    if request is None:
        return
    with st.spinner(request.progress_message):
        genres = run_action(context.recommender.run, request)
    if genres is not None:
        st.session_state.dynamic_genres = genres


def seed_database(context):
    st.session_state.error = None
    with st.spinner("Generating initial movie list..."):
        run_action(seed_library, context.recommender, context.store, context.lookup)


def add_to_library(context, suggestion):
    ids = run_action(promote_suggestions, context.store, [suggestion], context.lookup)
    if ids:
        st.session_state.recommendations = [
            s for s in st.session_state.recommendations if s.id != suggestion.id
        ]
        st.session_state.selected_movie_id = None
        st.success(f"Added {suggestion.title} to your library")

# =============================================================================
# UI COMPONENTS
# =============================================================================

def render_user_selector():
    names = list(FAMILY_MEMBERS)
    st.session_state.current_user = st.radio(
        "Who's rating?",
        names,
        index=names.index(st.session_state.current_user),
        horizontal=True,
    )


def render_filter_panel(context, movies):
    """Search box, era/genre/mood toggles and the suggestion buttons."""
    filters = st.session_state.filters

    query = st.text_input("Search your rated movies...", value=filters.query)
    filters = filters.with_query(query)

    for kind, label, options in (
        ("eras", "Eras", ERAS),
        ("genres", "Genres", st.session_state.dynamic_genres),
        ("moods", "Moods", INITIAL_MOODS),
    ):
        selected = st.pills(label, options, selection_mode="multi", key=f"filter_{kind}") or []
        for option in options:
            if (option in selected) != (option in getattr(filters, kind)):
                filters = filters.toggle(kind, option)

    st.session_state.filters = filters

    col1, col2 = st.columns(2)
    with col1:
        if st.button("✨ Refresh Genres", disabled=not context.recommender.configured):
            refresh_genres(context, movies)
            st.rerun()
    with col2:
        if st.button("🎬 Generate Suggestions", type="primary", disabled=not context.recommender.configured):
            request_suggestions(context, GenerateRequest(movies, filters))
            st.rerun()

    if not context.recommender.configured:
        st.info("💡 Add a GEMINI_API_KEY to enable suggestions.")


def render_movie_card(context, movie, movies, key_prefix):
    """One poster card with family / Adult / Kid averages."""
    st.image(movie.poster_url or placeholder_poster_url(movie.title), use_container_width=True)
    st.markdown(f"**{movie.title}** ({movie.year or '?'})")

    family_avg = family_average(movie.ratings)
    if family_avg > 0:
        adult_avg = group_average(movie.ratings, "Adult")
        kid_avg = group_average(movie.ratings, "Kid")
        st.markdown(
            f'<span class="avg-badge">★ {format_average(family_avg)}</span> '
            f'<span class="group-avg">Adults {format_average(adult_avg)} · Kids {format_average(kid_avg)}</span>',
            unsafe_allow_html=True,
        )

    col1, col2 = st.columns(2)
    with col1:
        if st.button("ℹ️ Details", key=f"{key_prefix}_details_{movie.id}"):
            st.session_state.selected_movie_id = movie.id
            st.rerun()
    with col2:
        if st.button("More like this", key=f"{key_prefix}_more_{movie.id}",
                     disabled=not context.recommender.configured):
            request_suggestions(context, MoreLikeThisRequest(movie, movies))
            st.rerun()


def render_movie_grid(context, items, movies, key_prefix, per_row=5):
    for start in range(0, len(items), per_row):
        cols = st.columns(per_row)
        for col, movie in zip(cols, items[start:start + per_row]):
            with col:
                render_movie_card(context, movie, movies, key_prefix)


def prime_rating_widget(key, current):
    """Start the star widget at the member's saved rating (st.feedback is 0-based)."""
    if current and key not in st.session_state:
        st.session_state[key] = current - 1


def save_rating(context, movie, user, key):
    """on_change callback for the star widget; clearing the stars saves nothing."""
    stars = st.session_state[key]
    if stars is not None:
        run_action(context.store.set_rating, movie, user, stars + 1)


def render_movie_details(context, movie):
    """Expanded view: rate, review and mark as watched for the current user."""
    user = st.session_state.current_user

    st.markdown(f"## {movie.title} ({movie.year or '?'})")
    family_avg = family_average(movie.ratings)
    if family_avg > 0:
        st.markdown(f"**Family Average:** ★ {format_average(family_avg)}")

    links = streaming_search_links(movie.title)
    st.markdown(" · ".join(f"[{platform}]({url})" for platform, url in links.items()))

    if movie.is_suggestion:
        st.markdown(
            '<div class="suggestion-note">This is a new suggestion. '
            'Add it to your library to rate it after you watch!</div>',
            unsafe_allow_html=True,
        )
        if st.button("➕ Add to library", key=f"promote_{movie.id}", type="primary"):
            add_to_library(context, movie)
            st.rerun()
    else:
        current = movie.ratings.get(user)
        rating_key = f"rating_{movie.id}_{user}"
        prime_rating_widget(rating_key, current)
        st.feedback("stars", key=rating_key, on_change=save_rating, args=(context, movie, user, rating_key))
        if current:
            st.caption(f"Your rating: {'★' * current}")

        review = movie.reviews.get(user, "")
        new_review = st.text_area(f"What did you think, {user}?", value=review, key=f"review_{movie.id}_{user}")
        if new_review != review and st.button("Save review", key=f"save_review_{movie.id}"):
            run_action(context.store.set_review, movie, user, new_review)

        st.write("**Last watched**")
        cols = st.columns(len(WATCHED_OPTIONS))
        for col, option in zip(cols, WATCHED_OPTIONS):
            with col:
                if st.button(option, key=f"watched_{movie.id}_{option}"):
                    run_action(context.store.set_last_watched, movie, option)

        others = {name: text for name, text in movie.reviews.items() if name != user and text}
        for name, text in others.items():
            st.markdown(f"> **{name}:** {text}")

    if st.button("Close", key=f"close_{movie.id}"):
        st.session_state.selected_movie_id = None
        st.rerun()


def find_selected_movie(movies, recommendations):
    """Resolve the selected id against the latest snapshot and suggestions."""
    selected_id = st.session_state.selected_movie_id
    if selected_id is None:
        return None
    for movie in [*movies, *recommendations]:
        if movie.id == selected_id:
            return movie
    return None


def render_scoreboard(movies):
    with st.expander("📊 Family Scoreboard"):
        st.dataframe(ratings_table(movies), hide_index=True, use_container_width=True)


@st.fragment(run_every=5)
def render_library(context, subscription):
    """The permanent library, refreshed from the live subscription."""
    movies = subscription.movies

    if subscription.error is not None:
        st.error(f"❌ {subscription.error.user_message}")
        if st.button("Reconnect"):
            subscription.resubscribe()

    st.markdown("### 🍿 Our Library")
    if not subscription.loaded and subscription.error is None:
        st.info("Loading your movie library...")
        return

    if not movies:
        st.write("Your library is empty. Let's get some movies in here!")
        if st.button("Seed Our Database", type="primary", disabled=not context.recommender.configured):
            seed_database(context)
            st.rerun(scope="app")
        return

    filters = st.session_state.filters
    render_movie_grid(context, filter_movies(movies, filters.query, filters.eras), movies, "lib")
    render_scoreboard(movies)

# =============================================================================
# MAIN APPLICATION
# =============================================================================

def main():
    """Main application function."""
    st.set_page_config(
        page_title="Family Movie Night",
        page_icon="🎬",
        layout="wide",
    )

    initialize_session_state()
    inject_custom_css()

    st.markdown('<h1 class="app-title">🎬 Family Movie Night</h1>', unsafe_allow_html=True)

    try:
        context = get_app_context()
    except MovieNightError as e:
        st.error(f"❌ {e.user_message}")
        return

    subscription = get_library_subscription(context)

    movies = subscription.movies

    render_user_selector()
    render_filter_panel(context, movies)

    if st.session_state.error:
        st.error(st.session_state.error)

    if st.session_state.recommendations:
        st.markdown("### ✨ Suggestions For You")
        render_movie_grid(context, st.session_state.recommendations, movies, "rec")

    selected = find_selected_movie(movies, st.session_state.recommendations)
    if selected is not None:
        render_movie_details(context, selected)

    render_library(context, subscription)


if __name__ == "__main__":
    main()
