import html

import streamlit as st

STATUS_COLORS = {
    "pending": "#f5b942",
    "approved": "#3ccf91",
    "rejected": "#ff6b6b",
}

TOAST_ICONS = {
    "success": "✅",
    "error": "⚠️",
    "info": "ℹ️",
}


def setup_style():
    st.markdown("""
    <style>
        @import url('https://fonts.googleapis.com/css2?family=Manrope:wght@400;600;700;800&display=swap');

        :root {
            --glass-bg: rgba(150, 230, 190, 0.10);
            --glass-border: rgba(220, 255, 236, 0.30);
            --glass-shadow: 0 14px 42px rgba(3, 30, 20, 0.35);
            --text-main: #f1fff7;
            --text-soft: rgba(225, 250, 236, 0.72);
            --accent: #3ccf91;
            --accent-2: #9ff0c9;
            --ease-fluid: cubic-bezier(0.22, 1, 0.36, 1);
        }

        html, body, .stApp {
            font-family: 'Manrope', sans-serif;
            color: var(--text-main);
            background:
                radial-gradient(55rem 28rem at 10% -5%, rgba(60, 207, 145, 0.24), transparent 65%),
                radial-gradient(50rem 24rem at 95% 0%, rgba(80, 170, 230, 0.16), transparent 62%),
                linear-gradient(180deg, #06140f 0%, #081a14 48%, #0a1a16 100%);
            background-attachment: fixed;
        }

        .main .block-container {
            padding-top: 1.6rem;
            padding-bottom: 2rem;
            animation: pageSlideIn 340ms var(--ease-fluid);
        }

        @keyframes pageSlideIn {
            from { opacity: 0; transform: translate3d(12px, 0, 0); }
            to { opacity: 1; transform: translate3d(0, 0, 0); }
        }

        h1, h2, h3 {
            font-weight: 800;
            letter-spacing: -0.04em;
            color: var(--text-main);
        }

        [data-testid="stSidebar"] {
            background: linear-gradient(165deg, rgba(120, 230, 180, 0.06), rgba(60, 160, 120, 0.02)) !important;
            backdrop-filter: blur(24px) saturate(140%);
            border-right: 1px solid rgba(255, 255, 255, 0.12) !important;
        }

        [data-testid="stMetric"], [data-testid="stForm"], [data-testid="stExpander"] {
            background: var(--glass-bg);
            border: 1px solid var(--glass-border);
            border-radius: 18px;
            box-shadow: var(--glass-shadow);
            padding: 0.8rem 1rem;
        }

        .stButton > button, .stFormSubmitButton > button {
            border-radius: 12px;
            border: 1px solid var(--glass-border);
            transition: transform 220ms var(--ease-fluid), box-shadow 220ms var(--ease-fluid);
        }

        .stButton > button:hover, .stFormSubmitButton > button:hover {
            transform: translateY(-1px);
            box-shadow: 0 8px 22px rgba(60, 207, 145, 0.25);
        }

        .pci-badge {
            display: inline-block;
            padding: 0.1rem 0.6rem;
            border-radius: 999px;
            font-size: 0.8rem;
            font-weight: 700;
            color: #06140f;
        }

        .pci-avatar {
            width: 56px;
            height: 56px;
            border-radius: 50%;
            object-fit: cover;
            display: inline-flex;
            align-items: center;
            justify-content: center;
            font-weight: 800;
            background: var(--accent);
            color: #06140f;
        }

        .pci-hero {
            padding: 2.2rem 2rem;
            border-radius: 24px;
            background: var(--glass-bg);
            border: 1px solid var(--glass-border);
            box-shadow: var(--glass-shadow);
        }
    </style>
    """, unsafe_allow_html=True)


def notify(kind, message):
    """Show exactly one toast for the outcome of an action."""
    st.toast(message, icon=TOAST_ICONS.get(kind, TOAST_ICONS["info"]))


def flash(kind, message):
    """Queue a toast that survives the st.rerun() following a mutation."""
    st.session_state.flash = (kind, message)


def show_flash():
    pending = st.session_state.get("flash")
    if pending:
        st.session_state.flash = None
        notify(*pending)


def status_badge(status):
    color = STATUS_COLORS.get(status, "#cfd8dc")
    return f"<span class='pci-badge' style='background:{color}'>{html.escape(str(status).title())}</span>"


def render_avatar(profile, size=56):
    if profile.avatar_url:
        st.image(profile.avatar_url, width=size)
    else:
        st.markdown(
            f"<div class='pci-avatar' style='width:{size}px;height:{size}px'>{html.escape(profile.initials)}</div>",
            unsafe_allow_html=True,
        )


def update_chart_layout(fig):
    fig.update_layout(
        template="plotly_dark",
        font=dict(family="Manrope, sans-serif", size=13, color="#EAFBF2"),
        margin=dict(l=20, r=20, t=50, b=20),
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(160,240,200,0.05)",
        xaxis=dict(showgrid=False, zeroline=False, showline=True, linecolor="rgba(210,255,230,0.28)"),
        yaxis=dict(showgrid=True, gridcolor="rgba(186,255,220,0.12)", zeroline=False),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig
