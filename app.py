import logging

import numpy as np
import streamlit as st

from gpa_calc.config import APP_URL, GRADE_OPTIONS, LOG_LEVEL, UNGRADED
from gpa_calc.io_csv import frame_to_record, read_csv_upload, record_to_csv
from gpa_calc.loader import LocalStore, Persister, client_id, load_initial
from gpa_calc.record import RecordStore, required_average_for_target
from gpa_calc.share import build_share_url, share_link
from gpa_calc.summary_image import SummaryCardRenderer

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# ------------------------
# Streamlit UI
# ------------------------

st.set_page_config(
    page_title="NUS GPA Calculator | Semester & Cumulative GPA",
    page_icon="🎓",
    layout="wide",
)

st.markdown(
    """
    <style>
    .gpa-value {
        font-size: 44px;
        font-weight: 900;
        line-height: 1;
        background: linear-gradient(90deg, #EF7C00, #003D7C);
        -webkit-background-clip: text;
        -webkit-text-fill-color: transparent;
    }
    </style>
    """,
    unsafe_allow_html=True
)

# Graded options for the picker; S/U is the checkbox.
GRADED_OPTIONS = [(label, value) for label, value in GRADE_OPTIONS if value >= 0]
LEGACY_SU_OPTION = ("S/U", UNGRADED)

# ------------------------
# Session state
# ------------------------

if "store" not in st.session_state:
    local_store = LocalStore.for_client(client_id(st.query_params))
    loaded = load_initial(st.query_params, local_store)
    store = RecordStore(loaded.record)
    persister = Persister(store, local_store)
    persister.mark_loaded()
    logger.info("Session started from %s record", loaded.source)

    st.session_state["store"] = store
    st.session_state["persister"] = persister
    st.session_state["load_source"] = loaded.source
    st.session_state["renderer"] = SummaryCardRenderer()

store: RecordStore = st.session_state["store"]
renderer: SummaryCardRenderer = st.session_state["renderer"]


def _grade_options(grade_value):
    if grade_value < 0:
        return [LEGACY_SU_OPTION] + GRADED_OPTIONS
    return GRADED_OPTIONS


def _on_label(sem_id, key):
    store.rename_semester(sem_id, st.session_state[key])


def _on_field(sem_id, mod_id, field_name, key):
    value = st.session_state[key]
    if field_name == "grade_value":
        value = value[1]
    try:
        store.update_module(sem_id, mod_id, field_name, value)
    except ValueError as e:
        st.session_state["edit_error"] = str(e)


def _on_exempt(sem_id, mod_id):
    store.toggle_exempt(sem_id, mod_id)


# ------------------------
# Header
# ------------------------

title_col, share_col = st.columns([6, 2])
with title_col:
    st.title("🎓 NUS GPA Calc")
    st.write(
        "Record your semesters and modules to get each semester's average and your "
        "cumulative GPA. S/U modules count toward credits but not toward GPA."
    )

if st.session_state.pop("load_source", None) == "link":
    st.success("Loaded the record from the shared link. Your edits will be saved on this device.")

if "edit_error" in st.session_state:
    st.error(st.session_state.pop("edit_error"))

summary = store.summary

col1, col2, col3, col4 = st.columns(4)
with col1:
    st.caption("CUMULATIVE")
    st.markdown(f'<div class="gpa-value">{summary.cumulative_gpa}</div>', unsafe_allow_html=True)
with col2:
    st.metric("Credits", f"{summary.total_credits:g}")
with col3:
    st.metric("Graded credits", f"{summary.graded_credits:g}")
with col4:
    st.metric("Standing", summary.honours)

# ------------------------
# Semesters
# ------------------------

st.markdown("---")

for idx, sem in enumerate(store.semesters):
    sem_summary = summary.semesters[idx]
    with st.container(border=True):
        head1, head2, head3 = st.columns([6, 2, 1])
        with head1:
            label_key = f"label_{sem.id}"
            st.text_input(
                f"Semester {idx + 1}",
                value=sem.label,
                key=label_key,
                on_change=_on_label,
                args=(sem.id, label_key),
            )
        with head2:
            st.metric("SAP", sem_summary.gpa, help=f"{sem_summary.total_credits:g} credits")
        with head3:
            st.button("🗑", key=f"del_sem_{sem.id}", on_click=store.remove_semester, args=(sem.id,),
                      help="Remove semester")

        for mod in sem.modules:
            c_name, c_credits, c_grade, c_su, c_del = st.columns([5, 2, 2, 1, 1])
            with c_name:
                key = f"name_{mod.id}"
                st.text_input("Module", value=mod.name, key=key, placeholder="Module Code",
                              label_visibility="collapsed",
                              on_change=_on_field, args=(sem.id, mod.id, "name", key))
            with c_credits:
                key = f"credits_{mod.id}"
                st.number_input("MCs", value=float(min(max(mod.credits, 0), 20)), min_value=0.0, max_value=20.0,
                                step=1.0, format="%g", key=key, label_visibility="collapsed",
                                on_change=_on_field, args=(sem.id, mod.id, "credits", key))
            with c_grade:
                key = f"grade_{mod.id}"
                options = _grade_options(mod.grade_value)
                values = [v for _, v in options]
                current = values.index(mod.grade_value) if mod.grade_value in values else 0
                st.selectbox("Grade", options, index=current,
                             format_func=lambda o: o[0], key=key, label_visibility="collapsed",
                             on_change=_on_field, args=(sem.id, mod.id, "grade_value", key))
            with c_su:
                st.checkbox("S/U", value=mod.is_exempt, key=f"su_{mod.id}",
                            on_change=_on_exempt, args=(sem.id, mod.id))
            with c_del:
                st.button("✕", key=f"del_mod_{mod.id}", on_click=store.remove_module,
                          args=(sem.id, mod.id), help="Remove module")

        st.button("＋ Add Module", key=f"add_mod_{sem.id}", on_click=store.add_module, args=(sem.id,))

st.button("＋ Add Next Semester", type="primary", on_click=store.add_semester, use_container_width=True)

# ------------------------------
# Target planner
# ------------------------------

st.markdown("---")
st.subheader("Target planner")

p1, p2 = st.columns(2)
with p1:
    target_gpa = st.number_input("Target cumulative GPA", min_value=0.0, max_value=5.0,
                                 value=4.0, step=0.05, format="%.2f")
with p2:
    remaining_credits = st.number_input("Graded credits still to take", min_value=0.0,
                                        value=40.0, step=4.0, format="%g")

needed = required_average_for_target(store.record.all_modules(), target_gpa, remaining_credits)
if np.isnan(needed):
    st.info("Enter the credits you still have to take to see what you need.")
elif needed > 5.0:
    st.error(f"❌ You would need an average of {needed:.2f} on the remaining credits, above the 5.00 maximum.")
elif needed <= 0.0:
    st.success("✅ You reach this target even with an F on every remaining module.")
else:
    st.success(f"✅ Average **{needed:.2f}** on the remaining {remaining_credits:g} credits to reach {target_gpa:.2f}.")

# ------------------------------
# Share
# ------------------------------

st.markdown("---")
st.subheader("Share")

s1, s2 = st.columns(2)
with s1:
    if st.button("Create share link"):
        long_url = build_share_url(store.record, APP_URL)
        with st.spinner("Shortening link..."):
            link = share_link(long_url)
        st.session_state["share_url"] = link.url
        st.session_state["share_shortened"] = link.shortened

    if "share_url" in st.session_state:
        st.code(st.session_state["share_url"], language=None)
        if not st.session_state.get("share_shortened"):
            st.caption("Short link unavailable right now, so this is the full link.")

with s2:
    if st.button("Render summary image"):
        share_url = st.session_state.get("share_url") or build_share_url(store.record, APP_URL)
        png = renderer.render(store.record, share_url)
        if png is None:
            st.warning("Could not render the summary image. Please try again.")
        else:
            st.session_state["summary_png"] = png

    if "summary_png" in st.session_state:
        st.image(st.session_state["summary_png"], use_container_width=True)
        st.download_button("Download image", st.session_state["summary_png"],
                           file_name="gpa-summary.png", mime="image/png")

# ------------------------------
# CSV import / export
# ------------------------------

st.markdown("---")
st.subheader("Import / export")

e1, e2 = st.columns(2)
with e1:
    st.download_button("Download record (.csv)", record_to_csv(store.record),
                       file_name="gpa-record.csv", mime="text/csv")
with e2:
    uploaded = st.file_uploader("Replace record from CSV (Semester, Module, Credits, Grade, Exempt)",
                                type=["csv"])
    if uploaded is not None and st.button("Replace record"):
        try:
            store.replace(frame_to_record(read_csv_upload(uploaded)))
            st.rerun()
        except ValueError as e:
            st.error(f"CSV error: {e}")

st.markdown(
    "<div style='text-align:center;color:#94a3b8;font-size:12px;margin-top:48px'>"
    "Built for NUS Students 🧡💙</div>",
    unsafe_allow_html=True,
)
