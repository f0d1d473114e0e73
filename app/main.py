"""
Streamlit Frontend for FamilySync

This is the screen that hangs in the kitchen: the family wall, each
kid's chore list and reward shop, and the parent portal.

DESIGN PRINCIPLES:
1. Big, simple controls a kid can use
2. Every button maps to exactly one store operation
3. Refusals (not enough points, last user) are shown, never hidden
4. Network features are optional extras

The UI never edits state itself:
- Buttons call FamilyStore / FamilyOrchestrator
- The page is re-rendered from store.state after every change

NOTE: get_components is cached per server process, so every browser
session shares one store and one logged-in user. The app assumes a
single wall screen per household.
"""

import asyncio
from datetime import date, timedelta

import streamlit as st

from familysync.config import get_settings, validate_all_settings
from familysync.ledger import FamilyStore, operations
from familysync.models import (
    CalendarSource,
    CalendarSourceType,
    Chore,
    ChoreFrequency,
    MealType,
    PhotoConfig,
    Reward,
    TimeOfDay,
    User,
    UserRole,
)
from familysync.orchestrator import FamilyOrchestrator, create_app_components
from familysync.services.google import AlbumFetchError, CalendarFetchError


# Page configuration
st.set_page_config(
    page_title="FamilySync",
    page_icon="🏠",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for a wall display
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 6px;
    }
    .chore-icon svg {
        width: 28px;
        height: 28px;
    }
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #2c3e50;
    }
    .event-box {
        padding: 10px 14px;
        background-color: #dbeafe;
        border-radius: 10px;
        border-left: 5px solid #2563eb;
        margin: 6px 0;
    }
</style>
""", unsafe_allow_html=True)

TIME_OF_DAY_LABELS = {
    TimeOfDay.MORNING: "🌅 Morning",
    TimeOfDay.AFTERNOON: "☀️ Afternoon",
    TimeOfDay.EVENING: "🌙 Evening",
    TimeOfDay.ALL_DAY: "📅 Any time",
}

WEATHER_EMOJI = {0: "☀️", 1: "🌤️", 2: "⛅", 3: "☁️", 45: "🌫️", 61: "🌧️", 71: "🌨️", 95: "⛈️"}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def show_result(ok: bool, message: str, success: str = "Saved!"):
    if ok:
        st.success(success)
    else:
        st.warning(f"⚠️ {message}")


def main():
    """Main application entry point."""
    store, orchestrator = get_components()
    state = store.state
    user = state.current_user

    st.sidebar.title(f"🏠 {state.family_name}")
    st.sidebar.markdown("---")

    if user is None:
        render_login_page(store)
        return

    if user.avatar:
        st.sidebar.image(user.avatar, width=64)
    st.sidebar.markdown(f"**{user.name}** · {user.points} pts")

    pages = ["🖼️ Family Wall", "✅ My Chores"]
    if user.is_parent:
        pages += ["👪 Parent Portal", "⚙️ Settings"]
    page = st.sidebar.radio("Navigate to:", pages, index=0)

    st.sidebar.markdown("---")
    if st.sidebar.button("🚪 Switch user"):
        store.logout()
        st.rerun()

    if page == "🖼️ Family Wall":
        render_wall_page(store, orchestrator)
    elif page == "✅ My Chores":
        render_kid_page(store, user)
    elif page == "👪 Parent Portal":
        render_parent_page(store, orchestrator)
    elif page == "⚙️ Settings":
        render_settings_page(store)


# =============================================================================
# LOGIN
# =============================================================================

def render_login_page(store: FamilyStore):
    """Pick who is using the screen. Parents with a PIN must enter it."""
    st.title("👋 Who's here?")

    columns = st.columns(min(len(store.state.users), 4) or 1)
    for index, member in enumerate(store.state.users):
        with columns[index % len(columns)]:
            if member.avatar:
                st.image(member.avatar, width=96)
            st.markdown(f"### {member.name}")
            st.caption("Parent" if member.is_parent else f"{member.points} points")

            if member.is_parent and member.pin:
                pin = st.text_input(
                    "PIN", type="password", max_chars=4, key=f"pin-{member.id}"
                )
                if st.button("Enter", key=f"login-{member.id}"):
                    if operations.verify_pin(member, pin):
                        store.login(member.id)
                        st.rerun()
                    else:
                        st.error("Wrong PIN")
            elif st.button("That's me", key=f"login-{member.id}"):
                store.login(member.id)
                st.rerun()


# =============================================================================
# FAMILY WALL
# =============================================================================

def render_wall_page(store: FamilyStore, orchestrator: FamilyOrchestrator):
    """Calendar, today's chores, meals, leaderboard and weather."""
    state = store.state
    st.title(f"🖼️ {state.family_name}")

    weather = run_async(orchestrator.get_weather())
    if weather:
        cols = st.columns(len(weather.daily[:5]) + 1)
        cols[0].markdown(
            f"<div class='big-number'>{WEATHER_EMOJI.get(weather.current.code, '🌡️')} "
            f"{weather.current.temp}°</div>",
            unsafe_allow_html=True,
        )
        for col, day in zip(cols[1:], weather.daily[:5]):
            col.metric(day.date[5:], f"{day.max}° / {day.min}°")

    if state.photos:
        st.image(state.photos[0].url, use_container_width=True)

    left, right = st.columns([2, 1])

    with left:
        st.markdown("### ✅ Today's Chores")
        for time_of_day, label in TIME_OF_DAY_LABELS.items():
            chores = [c for c in state.chores if c.time_of_day == time_of_day]
            if not chores:
                continue
            st.markdown(f"**{label}**")
            for chore in chores:
                render_chore_row(store, chore)

        st.markdown("### 📅 Coming Up")
        if not state.events:
            st.info("No events yet. A parent can sync calendars in the Parent Portal.")
        for event in sorted(state.events, key=lambda e: e.start)[:10]:
            st.markdown(
                f"<div class='event-box'><b>{event.title}</b><br/>{event.start}</div>",
                unsafe_allow_html=True,
            )

    with right:
        st.markdown("### 🏆 Leaderboard")
        for rank, kid in enumerate(
            sorted(state.kids, key=lambda u: u.total_points_earned, reverse=True), start=1
        ):
            st.markdown(f"{rank}. **{kid.name}** · {kid.total_points_earned} pts")

        st.markdown("### 🍽️ Today's Meals")
        today = date.today().isoformat()
        for meal in state.meals:
            if meal.date == today:
                st.markdown(f"**{meal.type.value.title()}:** {meal.title or '-'}")


def render_chore_row(store: FamilyStore, chore: Chore):
    assignee = store.state.get_user(chore.assignee_id)
    icon_col, text_col, button_col = st.columns([1, 6, 2])
    if chore.icon:
        icon_col.markdown(f"<div class='chore-icon'>{chore.icon}</div>", unsafe_allow_html=True)
    title = f"~~{chore.title}~~" if chore.completed else chore.title
    text_col.markdown(
        f"{title} · {assignee.name if assignee else '?'} · **{chore.points} pts**"
    )
    label = "↩️ Undo" if chore.completed else "✅ Done"
    if button_col.button(label, key=f"toggle-{chore.id}"):
        store.toggle_chore(chore.id)
        st.rerun()


# =============================================================================
# KID DASHBOARD
# =============================================================================

def render_kid_page(store: FamilyStore, user: User):
    """Own chores, the reward shop and the wishlist."""
    st.title(f"✅ {user.name}'s Chores")
    st.markdown(f"<div class='big-number'>⭐ {user.points} points</div>", unsafe_allow_html=True)

    chores = store.state.chores_for(user.id)
    if not chores:
        st.info("No chores assigned. Enjoy the day!")
    for chore in chores:
        render_chore_row(store, chore)

    st.markdown("---")
    st.markdown("### 🎁 Reward Shop")
    rewards = [
        r for r in store.state.rewards
        if r.approved and not r.redeemed and r.requested_by in (None, user.id)
    ]
    for reward in rewards:
        col1, col2 = st.columns([4, 1])
        shared = " (shared)" if reward.is_shared else ""
        col1.markdown(f"**{reward.title}**{shared} · {reward.cost} pts")
        if col2.button("Redeem", key=f"redeem-{reward.id}"):
            if reward.is_shared:
                ok, message = store.redeem_shared_reward(reward.id)
            else:
                ok, message = store.redeem_reward(reward.id, user.id)
            show_result(ok, message, success=f"🎉 Enjoy {reward.title}!")

    st.markdown("### 💭 Wishlist")
    with st.form("wishlist", clear_on_submit=True):
        title = st.text_input("What would you like?")
        cost = st.number_input("How many points is it worth?", min_value=0, value=100, step=10)
        if st.form_submit_button("Ask a parent") and title.strip():
            ok, message = store.request_reward(user.id, title, int(cost))
            show_result(ok, message, success="Sent to a parent for approval")

    pending = [r for r in store.state.pending_rewards if r.requested_by == user.id]
    for reward in pending:
        st.caption(f"⏳ {reward.title} · waiting for approval")


# =============================================================================
# PARENT PORTAL
# =============================================================================

def render_parent_page(store: FamilyStore, orchestrator: FamilyOrchestrator):
    st.title("👪 Parent Portal")
    overview, chores, rewards, meals, family, integrations = st.tabs(
        ["Overview", "Chores", "Rewards", "Meals", "Family", "Integrations"]
    )
    with overview:
        render_overview_tab(store)
    with chores:
        render_chores_tab(store, orchestrator)
    with rewards:
        render_rewards_tab(store)
    with meals:
        render_meals_tab(store)
    with family:
        render_family_tab(store)
    with integrations:
        render_integrations_tab(store, orchestrator)


def render_overview_tab(store: FamilyStore):
    state = store.state
    cols = st.columns(max(len(state.kids), 1))
    for col, kid in zip(cols, state.kids):
        done = sum(1 for c in state.chores_for(kid.id) if c.completed)
        col.metric(kid.name, f"{kid.points} pts", f"{done}/{len(state.chores_for(kid.id))} chores")

    st.markdown("### 📜 Recent Activity")
    for log in reversed(state.chore_history[-15:]):
        st.markdown(f"{log.date} · **{log.user_name}** completed {log.chore_title} (+{log.points})")

    orphans = operations.orphaned_rewards(state)
    if orphans:
        st.caption(f"{len(orphans)} wishlist item(s) belong to removed users.")


def render_chores_tab(store: FamilyStore, orchestrator: FamilyOrchestrator):
    state = store.state
    if not state.users:
        return

    for chore in state.chores:
        with st.expander(f"{chore.title} · {chore.points} pts"):
            edit_chore_form(store, orchestrator, chore)
            col1, col2 = st.columns(2)
            if col1.button("📄 Duplicate", key=f"dup-{chore.id}"):
                store.duplicate_chore(chore.id)
                st.rerun()
            if col2.button("🗑️ Delete", key=f"del-{chore.id}"):
                store.delete_chore(chore.id)
                st.rerun()

    st.markdown("### ➕ New Chore")
    edit_chore_form(store, orchestrator, None)

    col1, col2 = st.columns(2)
    if col1.button("🔄 Start new day"):
        store.reset_chores(ChoreFrequency.DAILY)
        st.rerun()
    if col2.button("🔄 Start new week"):
        store.reset_chores(ChoreFrequency.WEEKLY)
        st.rerun()

    if orchestrator.assistant.is_enabled:
        st.markdown("### ✨ Need ideas?")
        context = st.text_input("Describe your kids", placeholder="8 and 11, love animals")
        if st.button("Suggest chores") and context.strip():
            with st.spinner("Thinking..."):
                suggestions = run_async(orchestrator.assistant.suggest_chores(context))
            if not suggestions:
                st.info("No suggestions right now. Try again later.")
            for suggestion in suggestions:
                st.markdown(
                    f"**{suggestion.title}** · {suggestion.points} pts  \n{suggestion.description}"
                )


def edit_chore_form(store: FamilyStore, orchestrator: FamilyOrchestrator, chore):
    state = store.state
    key = chore.id if chore else "new"
    user_ids = [u.id for u in state.users]
    with st.form(f"chore-{key}", clear_on_submit=chore is None):
        title = st.text_input("Title", value=chore.title if chore else "")
        description = st.text_input("Description", value=(chore.description or "") if chore else "")
        points = st.number_input(
            "Points", min_value=0, step=10,
            value=chore.points if chore else get_settings().app.default_chore_points,
        )
        assignee_id = st.selectbox(
            "Assigned to",
            options=user_ids,
            index=user_ids.index(chore.assignee_id) if chore and chore.assignee_id in user_ids else 0,
            format_func=lambda uid: state.get_user(uid).name,
        )
        frequency = st.selectbox(
            "Repeats",
            options=list(ChoreFrequency),
            index=list(ChoreFrequency).index(chore.frequency) if chore else 0,
            format_func=lambda f: f.value.title(),
        )
        time_of_day = st.selectbox(
            "Time of day",
            options=list(TimeOfDay),
            index=list(TimeOfDay).index(chore.time_of_day) if chore else 3,
            format_func=lambda t: TIME_OF_DAY_LABELS[t],
        )
        if st.form_submit_button("Save chore") and title.strip():
            fields = {
                "title": title,
                "description": description or None,
                "points": int(points),
                "assignee_id": assignee_id,
                "frequency": frequency,
                "time_of_day": time_of_day,
            }
            updated = chore.model_copy(update=fields) if chore else Chore(**fields)
            with st.spinner("Saving..."):
                ok, message = run_async(orchestrator.save_chore(updated))
            show_result(ok, message)


def render_rewards_tab(store: FamilyStore):
    state = store.state

    st.markdown("### ⏳ Waiting for Approval")
    if not state.pending_rewards:
        st.info("No requests right now.")
    for reward in state.pending_rewards:
        requester = state.get_user(reward.requested_by)
        col1, col2, col3 = st.columns([3, 1, 1])
        col1.markdown(f"**{reward.title}** · asked by {requester.name if requester else 'removed user'}")
        cost = col2.number_input(
            "Cost", min_value=0, value=reward.cost, step=10, key=f"cost-{reward.id}"
        )
        if col3.button("Approve", key=f"approve-{reward.id}"):
            show_result(*store.approve_reward(reward.id, int(cost)))
            st.rerun()
        if col3.button("Reject", key=f"reject-{reward.id}"):
            store.delete_reward(reward.id)
            st.rerun()

    st.markdown("### 🎁 Catalog")
    for reward in state.rewards:
        if reward.is_pending:
            continue
        col1, col2 = st.columns([4, 1])
        status = " · redeemed" if reward.redeemed else ""
        col1.markdown(f"**{reward.title}** · {reward.cost} pts{status}")
        if col2.button("🗑️", key=f"del-reward-{reward.id}"):
            store.delete_reward(reward.id)
            st.rerun()

    with st.form("new-reward", clear_on_submit=True):
        title = st.text_input("Reward")
        cost = st.number_input("Cost", min_value=0, value=100, step=10)
        shared = st.checkbox("Shared by all kids")
        if st.form_submit_button("Add reward") and title.strip():
            store.add_reward(Reward(title=title, cost=int(cost), is_shared=shared))
            st.rerun()


def render_meals_tab(store: FamilyStore):
    today = date.today()
    for offset in range(7):
        day = (today + timedelta(days=offset)).isoformat()
        st.markdown(f"**{day}**")
        cols = st.columns(len(MealType))
        for col, meal_type in zip(cols, MealType):
            current = next(
                (m.title for m in store.state.meals if m.date == day and m.type == meal_type), ""
            )
            title = col.text_input(
                meal_type.value.title(), value=current, key=f"meal-{day}-{meal_type.value}"
            )
            if title != current:
                store.update_meal(day, meal_type, title)


def render_family_tab(store: FamilyStore):
    state = store.state

    name = st.text_input("Family name", value=state.family_name)
    if name != state.family_name:
        store.update_family_name(name)

    st.markdown("### 👥 Members")
    for member in state.users:
        col1, col2 = st.columns([4, 1])
        col1.markdown(f"**{member.name}** · {member.role.value.title()} · {member.points} pts")
        if col2.button("Remove", key=f"remove-{member.id}"):
            ok, message = store.delete_user(member.id)
            show_result(ok, message, success=f"Removed {member.name}")
            if ok:
                st.rerun()

    with st.form("new-member", clear_on_submit=True):
        new_name = st.text_input("Name")
        role = st.selectbox("Role", options=list(UserRole), format_func=lambda r: r.value.title())
        if st.form_submit_button("Add member") and new_name.strip():
            show_result(*store.add_user(new_name, role))
            st.rerun()

    user = state.current_user
    if user is not None and user.is_parent:
        with st.form("pin", clear_on_submit=True):
            pin = st.text_input("Set a 4-digit PIN for your profile", type="password", max_chars=4)
            if st.form_submit_button("Save PIN"):
                show_result(*store.set_pin(user.id, pin), success="PIN saved")


def render_integrations_tab(store: FamilyStore, orchestrator: FamilyOrchestrator):
    state = store.state
    st.markdown("### 📅 Google Calendar")
    token = st.text_input("Google access token", type="password", key="google-token")

    if st.button("🔄 Sync now") and token:
        with st.spinner("Syncing..."):
            count = run_async(orchestrator.sync_google(token))
        st.success(f"Synced {count} events")

    for source in state.calendar_sources:
        col1, col2 = st.columns([4, 1])
        col1.markdown(f"**{source.name}** · {source.owner_name}")
        if col2.button("Unlink", key=f"unlink-{source.id}"):
            store.remove_calendar_source(source.id)
            st.rerun()

    if not token:
        st.info("Enter an access token to link calendars and albums.")
        return

    if st.button("📋 Load my calendars"):
        try:
            st.session_state["calendar-options"] = run_async(orchestrator.list_calendars(token))
        except CalendarFetchError as e:
            st.warning(f"⚠️ Could not load calendars: {e}")

    calendars = st.session_state.get("calendar-options", [])
    if calendars:
        with st.form("new-source", clear_on_submit=True):
            picked = st.selectbox("Calendar", options=calendars, format_func=lambda c: c.name)
            shared = st.checkbox("Family calendar")
            if st.form_submit_button("Link calendar"):
                owner = state.current_user
                store.add_calendar_source(CalendarSource(
                    calendar_id=picked.id,
                    name=picked.name,
                    color="bg-purple-100 text-purple-800 border-purple-200",
                    type=CalendarSourceType.FAMILY if shared else CalendarSourceType.PERSONAL,
                    owner_id=owner.id if owner else "",
                    owner_name=owner.name if owner else "",
                    access_token=token,
                ))
                st.rerun()

    st.markdown("### 🖼️ Photo Slideshow")
    if state.photo_config.album_name:
        st.caption(f"Showing: {state.photo_config.album_name}")

    if st.button("📋 Load my albums"):
        try:
            st.session_state["album-options"] = run_async(orchestrator.list_albums(token))
        except AlbumFetchError as e:
            st.warning(f"⚠️ Could not load albums: {e}")

    albums = st.session_state.get("album-options", [])
    if albums:
        album = st.selectbox("Album", options=albums, format_func=lambda a: a.title)
        if st.button("Use album"):
            store.set_photo_config(PhotoConfig(
                album_id=album.id, album_name=album.title, access_token=token
            ))
            count = run_async(orchestrator.refresh_photos())
            st.success(f"{count} photos in the slideshow")


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(store: FamilyStore):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")
    status = validate_all_settings()

    services = [
        ("Local storage", "app"),
        ("Gemini (chore icons and ideas)", "gemini"),
        ("Google (calendar and photos)", "google"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Audit Trail")
    audit_storage = store.audit_logger.storage
    if audit_storage is not None:
        for event in audit_storage.get_recent_events(limit=20):
            st.caption(f"{event.timestamp:%Y-%m-%d %H:%M} · {event.description}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
