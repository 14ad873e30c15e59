import logging

import streamlit as st

from services import leaderboard_service
from utils import session_manager

log = logging.getLogger(__name__)

HOW_IT_WORKS = [
    ("♻️ Report Waste",
     "Submit waste reports with details about the type, weight, and location of plastic waste you've found."),
    ("🚚 Connect with Agents",
     "Local verified agents collect the reported waste and make sure it is properly processed."),
    ("🎁 Earn Rewards",
     "Get PCI points for your environmental contributions and redeem them for rewards from our partners."),
]

EDUCATION_TOPICS = [
    ("Plastic Recycling Basics",
     "Learn about different types of plastics, identification symbols, and proper recycling methods."),
    ("Environmental Impact",
     "Understand how plastic waste affects ecosystems, oceans, and climate change."),
    ("Sustainable Practices",
     "Discover practical tips for reducing plastic use in your daily life and community."),
]


@st.cache_data(ttl=60, show_spinner=False)
def _cached_stats():
    return leaderboard_service.platform_stats()


def render_home():
    st.markdown(
        """
        <div class="pci-hero">
          <p style="color: var(--accent-2); font-weight: 700;">Positive Climate Impact</p>
          <h1>Making plastic waste management rewarding</h1>
          <p>Join our community and help create a cleaner planet while earning rewards
          for your environmental efforts.</p>
        </div>
        """,
        unsafe_allow_html=True,
    )
    st.write("")
    c1, c2, _ = st.columns([1, 1, 3])
    if c1.button("Get Started", type="primary", use_container_width=True):
        session_manager.navigate("/register")
    if c2.button("Learn More", use_container_width=True):
        session_manager.navigate("/about")

    st.header("How It Works")
    st.caption("Our platform connects individuals, collection agents, and partner organizations "
               "in one waste management ecosystem.")
    for col, (title, text) in zip(st.columns(3), HOW_IT_WORKS):
        with col:
            with st.container(border=True):
                st.subheader(title)
                st.write(text)

    stats = _cached_stats()
    s1, s2, s3 = st.columns(3)
    s1.metric("Kilograms collected", f"{stats['kg_collected']:,.1f}")
    s2.metric("Active users", stats["users"])
    s3.metric("Verified agents", stats["approved_agents"])


def render_about():
    st.title("About PCI")
    st.write(
        "Positive Climate Impacts (PCI) is dedicated to reducing plastic waste and promoting "
        "environmental sustainability through practical waste management."
    )
    st.header("Our Mission")
    st.write(
        "We connect users with local waste management agents to collect, process and recycle "
        "plastic waste in a transparent and rewarding ecosystem."
    )
    st.header("How It Works")
    for title, text in HOW_IT_WORKS:
        st.markdown(f"**{title}**  \n{text}")


def render_education():
    st.title("Educational Resources")
    st.write("Learn about plastic waste management, recycling best practices, and how your actions "
             "can create positive climate impacts.")
    for col, (title, text) in zip(st.columns(3), EDUCATION_TOPICS):
        with col:
            with st.container(border=True):
                st.subheader(title)
                st.write(text)
                st.caption("Coming soon")
    st.info("Our educational content is being developed by environmental experts. "
            "Full resources will be available soon.")


def render_leaderboard():
    st.title("🏆 Leaderboard")
    tab_users, tab_agents = st.tabs(["Top recyclers", "Top agents"])
    with tab_users:
        users = leaderboard_service.top_users()
        if users.empty:
            st.info("No points have been earned yet. Be the first!")
        else:
            st.dataframe(
                users[["rank", "name", "points"]].rename(columns={"rank": "#", "name": "Name", "points": "Points"}),
                use_container_width=True,
                hide_index=True,
            )
    with tab_agents:
        agents = leaderboard_service.top_agents()
        if agents.empty:
            st.info("No collections have been approved yet.")
        else:
            st.dataframe(
                agents[["rank", "name", "kg_collected", "reports"]].rename(
                    columns={"rank": "#", "name": "Agent", "kg_collected": "Kg collected", "reports": "Reports"}
                ),
                use_container_width=True,
                hide_index=True,
            )


def render_not_found(path):
    log.warning(f"404: unknown route requested: {path}")
    st.title("404")
    st.subheader("Oops! Page not found")
    st.write("The page you are looking for might have been removed, had its name changed, "
             "or is temporarily unavailable.")
    if st.button("Return to Home", type="primary"):
        session_manager.navigate("/")


def render_loading():
    st.info("Loading your session...")
