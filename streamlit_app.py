# streamlit_app.py
import streamlit as st
import requests
import time
import pandas as pd
from typing import Dict, Any, List, Optional

from subtrack.services.export import export_filename, subids_csv

st.set_page_config(page_title="Sub-ID Tracker", layout="wide")

# Sidebar: configure FastAPI base URL
api_base = st.sidebar.text_input("FastAPI base URL", value="http://localhost:8000")
st.sidebar.markdown("Make sure the API is running (uvicorn subtrack.main:app --reload).")
page = st.sidebar.radio("View", ["Sub-IDs", "GEO rankings", "Reconcile tasks"])

def call_api(method: str, path: str, payload: Optional[Dict[str, Any]] = None, **params) -> Any:
    url = api_base.rstrip("/") + path
    resp = requests.request(method, url, json=payload, params=params or None, timeout=60)
    resp.raise_for_status()
    return resp.json()

def show_http_error(e: requests.HTTPError):
    resp = e.response
    if resp is None:
        st.error(f"HTTP error: {e}")
        return
    try:
        detail = resp.json().get("error") or resp.text
    except ValueError:
        detail = resp.text
    st.error(f"API error: {resp.status_code} — {detail}")

def guarded(fn, *args, **kwargs):
    """Run an API call and render its failure instead of raising."""
    try:
        return fn(*args, **kwargs)
    except requests.HTTPError as e:
        show_http_error(e)
    except requests.RequestException as e:
        st.error(f"Could not reach the API: {e}")
    return None

def subids_table(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(rows)
    if df.empty:
        return df
    df["created"] = pd.to_datetime(df["timestamp"], unit="ms", utc=True)
    cols = ["value", "url", "clickup_task_id", "comment_posted", "is_immutable", "created"]
    return df[cols]


def sub_ids_page():
    st.title("Sub-IDs")
    websites = guarded(call_api, "GET", "/api/websites") or []

    with st.expander("Add website"):
        with st.form("website_form"):
            name = st.text_input("Name")
            pattern = st.text_input("Format pattern", value="{date}-{random4digits}")
            if st.form_submit_button("Create") and name:
                if guarded(call_api, "POST", "/api/websites", {"name": name, "format_pattern": pattern}):
                    st.success(f"Website {name} created")
                    st.rerun()

    if not websites:
        st.info("No websites yet.")
        return
    by_name = {f"{w['name']} ({w['sub_id_count']})": w for w in websites}
    website = by_name[st.selectbox("Website", list(by_name))]
    rows = guarded(call_api, "GET", f"/api/websites/{website['id']}/subids") or []

    cols = st.columns([1, 1, 1, 2])
    with cols[0]:
        if st.button("Generate Sub-ID"):
            if guarded(call_api, "POST", f"/api/websites/{website['id']}/subids", {}):
                st.rerun()
    with cols[1]:
        if st.button("Refresh URLs from ClickUp"):
            res = guarded(call_api, "POST", f"/api/websites/{website['id']}/clickup/refresh-urls")
            if res:
                st.success(f"{res['updated']} of {res['checked']} URLs filled")
    with cols[2]:
        if st.button("Post pending comments"):
            res = guarded(call_api, "POST", f"/api/websites/{website['id']}/clickup/comments")
            if res:
                st.success(f"{res['posted']} of {res['checked']} comments posted")
                for err in res.get("errors", []):
                    st.warning(f"{err.get('sub_id')}: {err['error']}")
    with cols[3]:
        detailed = st.checkbox("Include URL and task in CSV", value=False)
        st.download_button(
            "Download CSV",
            subids_csv(rows, detailed=detailed),
            file_name=export_filename(website["name"], int(time.time() * 1000)),
            mime="text/csv",
        )

    with st.expander("Bulk import from ClickUp tasks"):
        raw = st.text_area("Task IDs (one per line)")
        if st.button("Import") and raw.strip():
            ids = [t.strip() for t in raw.splitlines() if t.strip()]
            res = guarded(call_api, "POST", f"/api/websites/{website['id']}/clickup/bulk", {"task_ids": ids})
            if res:
                st.success(f"{res['success']} Sub-IDs created, {res['urls_populated']} with URLs")
                for err in res.get("errors", []):
                    st.warning(f"{err.get('task_id')}: {err['error']}")

    st.dataframe(subids_table(rows), use_container_width=True)


def rankings_page():
    st.title("GEO rankings")
    geos = guarded(call_api, "GET", "/api/geos") or []
    if not geos:
        st.info("No GEOs configured. Run python -m subtrack.seed to add the default set.")
        return
    by_code = {g["code"]: g for g in geos}
    geo = by_code[st.selectbox("GEO", list(by_code))]
    rankings = guarded(call_api, "GET", f"/api/geos/{geo['id']}/rankings") or []
    rows = [{
        "position": r.get("position"),
        "brand": (r.get("brand") or {}).get("name"),
        "affiliate_link": r.get("affiliate_link"),
    } for r in rankings]
    featured = [r for r in rows if r["position"] is not None]
    others = [r for r in rows if r["position"] is None]
    st.markdown("### Featured")
    st.dataframe(pd.DataFrame(featured), use_container_width=True)
    if others:
        st.markdown("### Other brands")
        st.dataframe(pd.DataFrame(others), use_container_width=True)


def reconcile_page():
    st.title("Reconcile ClickUp tasks")
    websites = guarded(call_api, "GET", "/api/websites") or []
    with st.form("reconcile_form"):
        raw = st.text_area("Task IDs (comma or newline separated)")
        submitted = st.form_submit_button("Reconcile")
    if submitted and raw.strip():
        with st.spinner("Fetching tasks..."):
            res = guarded(call_api, "POST", "/api/reconcile-tasks", {"task_ids": [raw]})
        if res:
            st.session_state["reconcile"] = res["results"]

    results = st.session_state.get("reconcile") or []
    for r in results:
        st.markdown("---")
        st.subheader(r["task_id"])
        if r.get("error"):
            st.error(r["error"])
            continue
        geo = r.get("detected_geo")
        st.write("Website:", r.get("website_name") or "—")
        st.write("GEO:", geo["code"] if geo else f"{r.get('geo_candidate') or '—'} (needs setup)")
        match = r.get("brand_match")
        if match:
            st.write(f"Brand match: #{match['position']} {match['brand_name']}")
        if r.get("sub_id_exists"):
            st.success(f"Sub-ID {r['sub_id_value']} already linked")
        elif r.get("website_id"):
            if st.button("Create Sub-ID", key=f"create-{r['task_id']}"):
                row = guarded(call_api, "POST", "/api/create-subid-from-task",
                              {"task_id": r["task_id"], "website_id": r["website_id"]})
                if row:
                    st.success(f"Created {row['value']}")
        elif websites:
            st.warning("No website matched this task.")


# Page body
if page == "Sub-IDs":
    sub_ids_page()
elif page == "GEO rankings":
    rankings_page()
else:
    reconcile_page()

st.markdown("---")
st.caption("This UI only talks to the Sub-ID Tracker API.")
