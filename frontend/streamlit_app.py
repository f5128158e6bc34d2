from datetime import date, datetime

import pandas as pd
import requests
import streamlit as st

from ui_kit import card, gauge, set_page, status_badge, status_cards, to_df_children, to_df_records


set_page()

API_BASE = st.sidebar.text_input("API Base URL", value="http://127.0.0.1:8001")


# -----------------------
# Helpers
# -----------------------
def _headers() -> dict:
    token = st.session_state.get("token")
    return {"Authorization": f"Bearer {token}"} if token else {}


def _error_message(r: requests.Response, fallback: str) -> str:
    try:
        body = r.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("error") == "Validation Error":
        return f"Validation Error: {body.get('detail')}"
    if isinstance(body, dict) and r.status_code in (401, 403, 404, 409):
        return str(body.get("detail") or fallback)
    return fallback


def api_call(method: str, path: str, fallback: str, payload: dict | None = None, params: dict | None = None):
    """Call the API; on failure show a notification and return None (prior state kept)."""
    url = f"{API_BASE}{path}"
    try:
        r = requests.request(method, url, json=payload, params=params, headers=_headers(), timeout=30)
    except requests.RequestException as e:
        st.error(f"{fallback}\n{e}")
        return None
    if r.status_code == 401 and st.session_state.get("token"):
        st.session_state.pop("token", None)
        st.session_state.pop("user", None)
    if not r.ok:
        st.error(_error_message(r, fallback))
        return None
    if r.status_code == 204 or not r.content:
        return {}
    return r.json()


def sign_in(email: str, password: str) -> None:
    out = api_call("POST", "/auth/login", "Invalid login credentials", {"email": email, "password": password})
    if out:
        st.session_state["token"] = out["access_token"]
        st.session_state["user"] = out["user"]
        st.rerun()


def sign_up(email: str, password: str, full_name: str, role: str, awc_center: str) -> None:
    payload = {
        "email": email,
        "password": password,
        "full_name": full_name,
        "role": role,
        "awc_center": awc_center or None,
    }
    out = api_call("POST", "/auth/signup", "Sign up failed", payload)
    if out:
        st.session_state["token"] = out["access_token"]
        st.session_state["user"] = out["user"]
        st.rerun()


def sign_out() -> None:
    api_call("POST", "/auth/logout", "Sign out failed")
    st.session_state.pop("token", None)
    st.session_state.pop("user", None)
    st.rerun()


# -----------------------
# Login
# -----------------------
def login_view() -> None:
    st.title("Anganwadi Nutrition Dashboard")
    st.caption("Track SAM / MAM / Normal status across AWC centers")

    tab_in, tab_up = st.tabs(["Sign in", "Sign up"])
    with tab_in:
        with st.form("login"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            if st.form_submit_button("Sign in", use_container_width=True):
                if not email or not password:
                    st.warning("Validation Error: email and password are required")
                else:
                    sign_in(email, password)

    with tab_up:
        with st.form("signup"):
            full_name = st.text_input("Full name")
            email = st.text_input("Email", key="su_email")
            password = st.text_input("Password", type="password", key="su_pw")
            role = st.selectbox("Role", ["healthworker", "admin"])
            awc_center = st.text_input("AWC Center (health workers)")
            if st.form_submit_button("Create account", use_container_width=True):
                if not full_name or not email or not password:
                    st.warning("Validation Error: please fill in all fields")
                else:
                    sign_up(email, password, full_name, role, awc_center)


# -----------------------
# Admin pages
# -----------------------
def admin_dashboard() -> None:
    st.header("Admin Dashboard")
    st.caption("Monitor malnutrition across all AWC centers")
    report = api_call("GET", "/reports/centers", "Failed to fetch report data")
    if not report:
        return

    totals = {f"{s['status'].lower()}_count": s["count"] for s in report["summary"]}
    totals["total_count"] = report["total_children"]
    status_cards(totals)

    children = api_call("GET", "/children", "Failed to fetch children data") or []
    df = to_df_children(children[:10])
    if len(df):
        st.subheader("Recent registrations")
        st.dataframe(df[["name", "awc_center", "date_of_birth", "status", "created_at"]], use_container_width=True)


def add_healthworker_page() -> None:
    st.header("Health Workers")
    with st.form("add_hw", clear_on_submit=True):
        full_name = st.text_input("Full name")
        awc_center = st.text_input("AWC Center")
        submitted = st.form_submit_button("Add health worker")
    if submitted:
        if not full_name or not awc_center:
            st.warning("Validation Error: please fill in all fields")
        else:
            out = api_call(
                "POST", "/healthworkers", "Failed to add health worker",
                {"full_name": full_name, "awc_center": awc_center},
            )
            if out:
                st.success("Healthworker added successfully")
                card(
                    "Generated credentials",
                    f"Username: <b>{out['username']}</b><br>Email: <b>{out['email']}</b><br>"
                    f"Password: <b>{out['password']}</b><br><span class='muted small'>Shown once; share securely.</span>",
                )

    workers = api_call("GET", "/healthworkers", "Failed to fetch health workers") or []
    if not workers:
        st.info("No health workers yet.")
        return
    st.dataframe(pd.DataFrame(workers)[["full_name", "username", "awc_center", "created_at"]], use_container_width=True)

    by_label = {f"{w['full_name']} ({w['username']})": w["id"] for w in workers}
    target = st.selectbox("Remove health worker", list(by_label))
    if st.button("Remove", type="secondary"):
        if api_call("DELETE", f"/healthworkers/{by_label[target]}", "Failed to remove health worker") is not None:
            st.success("Healthworker removed successfully")
            st.rerun()


def view_children_page() -> None:
    st.header("Children Records")
    c1, c2, c3 = st.columns([2, 1, 1])
    search = c1.text_input("Search by child or guardian name")
    status = c2.selectbox("Status", ["all", "sam", "mam", "normal"])
    center = c3.text_input("AWC Center (blank = all)")

    params = {"search": search or None, "status": None if status == "all" else status, "center": center or None}
    children = api_call("GET", "/children", "Failed to fetch children data", params=params)
    if children is None:
        return
    st.caption(f"{len(children)} children")
    df = to_df_children(children)
    if len(df):
        st.dataframe(
            df[["name", "guardian_name", "gender", "date_of_birth", "awc_center", "city", "district", "status"]],
            use_container_width=True,
        )


def reports_page() -> None:
    st.header("Reports")
    c1, c2 = st.columns(2)
    center = c1.text_input("AWC Center (blank = all)", key="rep_center")
    range_label = c2.selectbox("Registered within", ["all", "30 days", "90 days", "365 days"])
    days = None if range_label == "all" else int(range_label.split()[0])

    report = api_call(
        "GET", "/reports/centers", "Failed to fetch report data",
        params={"center": center or None, "days": days},
    )
    if not report:
        return

    summary = pd.DataFrame(report["summary"])
    st.subheader("Status summary")
    st.bar_chart(summary.set_index("status")["count"])
    for row in report["summary"]:
        gauge(row["status"], row["percentage"] / 100.0, hint=f"{row['count']} children")

    centers = pd.DataFrame(report["centers"])
    if len(centers):
        st.subheader("By AWC center")
        st.bar_chart(centers.set_index("awc_center")[["sam_count", "mam_count", "normal_count"]])
        st.dataframe(centers, use_container_width=True)


# -----------------------
# Health worker pages
# -----------------------
def healthworker_dashboard(user: dict) -> None:
    st.header("Health Worker Dashboard")
    st.caption(f"Welcome back, {user.get('full_name')} • {user.get('awc_center') or 'no center assigned'}")
    counts = api_call("GET", "/reports/summary", "Failed to fetch center summary")
    if counts:
        status_cards(counts)


def add_child_page() -> None:
    st.header("Register Child")
    with st.form("add_child", clear_on_submit=True):
        name = st.text_input("Child name")
        dob = st.date_input("Date of birth", value=date.today(), max_value=date.today())
        gender = st.selectbox("Gender", ["male", "female", "other"])
        guardian = st.text_input("Guardian name")
        city = st.text_input("City")
        district = st.text_input("District")
        submitted = st.form_submit_button("Register")
    if submitted:
        fields = [name, guardian, city, district]
        if not all(f.strip() for f in fields):
            st.warning("Validation Error: please fill in all fields")
            return
        payload = {
            "name": name,
            "date_of_birth": dob.isoformat(),
            "gender": gender,
            "guardian_name": guardian,
            "city": city,
            "district": district,
        }
        if api_call("POST", "/children", "Failed to register child", payload):
            st.success("Child registered successfully")


def child_records_page() -> None:
    st.header("Child Records")
    search = st.text_input("Search by child or guardian name")
    children = api_call("GET", "/children", "Failed to fetch children data", params={"search": search or None})
    if children is None:
        return
    if not children:
        st.info("No children registered at your AWC yet.")
        return

    by_label = {f"{c['name']} (guardian: {c['guardian_name']}) - {status_badge(c['current_status'])}": c for c in children}
    child = by_label[st.selectbox(f"Children in your AWC ({len(children)})", list(by_label))]

    with st.expander("Add health record"):
        with st.form("add_record", clear_on_submit=True):
            c1, c2 = st.columns(2)
            height = c1.number_input("Height (cm)", min_value=0.0, step=0.5)
            weight = c2.number_input("Weight (kg)", min_value=0.0, step=0.1)
            edema = st.checkbox("Edema present")
            poverty = c1.slider("Poverty index", 0, 10, 5)
            sanitation = c2.slider("Sanitation index", 0, 10, 5)
            meals = st.number_input("Meals per day", min_value=1, max_value=10, value=3, step=1)
            submitted = st.form_submit_button("Save record")
        if submitted:
            if height <= 0 or weight <= 0:
                st.warning("Validation Error: height and weight are required")
            else:
                payload = {
                    "height_cm": height,
                    "weight_kg": weight,
                    "edema": edema,
                    "poverty_index": poverty,
                    "sanitation_index": sanitation,
                    "meals_per_day": int(meals),
                }
                rec = api_call("POST", f"/children/{child['id']}/records", "Failed to add health record", payload)
                if rec:
                    st.success(f"Health record added: {status_badge(rec['predicted_status'])}")

    if st.button("Repredict status from latest record"):
        rec = api_call("POST", f"/children/{child['id']}/repredict", "Failed to repredict status")
        if rec:
            st.success(f"New prediction: {status_badge(rec['predicted_status'])}")

    records = api_call("GET", f"/children/{child['id']}/records", "Failed to fetch health records")
    df = to_df_records(records or [])
    if not len(df):
        st.info("No health records for this child yet.")
        return

    latest = df.iloc[0]
    st.subheader(f"Current status: {status_badge(latest['predicted_status'])}")
    gauge("SAM", latest["sam_probability"])
    gauge("MAM", latest["mam_probability"])
    gauge("Normal", latest["normal_probability"])

    st.dataframe(
        df[["recorded_at", "height", "weight", "edema", "poverty_index", "sanitation_index",
            "meals_per_day", "status", "sam_pct", "mam_pct", "normal_pct"]],
        use_container_width=True,
    )
    if len(df) > 1:
        st.line_chart(df.set_index("recorded_at")[["weight", "height"]])


# -----------------------
# Navigation
# -----------------------
user = st.session_state.get("user")
if not st.session_state.get("token") or not user:
    login_view()
    st.stop()

st.sidebar.markdown(f"**{user['full_name']}**  \n{user['role']} • {user.get('awc_center') or '-'}")
if st.sidebar.button("Sign out"):
    sign_out()

if user["role"] == "admin":
    pages = {
        "Dashboard": admin_dashboard,
        "Health Workers": add_healthworker_page,
        "Children": view_children_page,
        "Reports": reports_page,
    }
    pages[st.sidebar.radio("Go to", list(pages))]()
else:
    page = st.sidebar.radio("Go to", ["Dashboard", "Register Child", "Child Records"])
    if page == "Dashboard":
        healthworker_dashboard(user)
    elif page == "Register Child":
        add_child_page()
    else:
        child_records_page()

st.sidebar.caption(f"Loaded {datetime.now().strftime('%H:%M:%S')}")
