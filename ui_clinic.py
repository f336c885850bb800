"""
MedAssist: Clinic Intake UI (Streamlit)
Patient details, vitals, symptoms and images, then the simulated AI analysis
"""

import base64
import time

import pandas as pd
import requests
import streamlit as st

from config import BACKEND_URL, REQUEST_TIMEOUT
from models import COMMON_SYMPTOMS, Gender, ImageType, SymptomSeverity
from presenter import (
    PRODUCT_NAME,
    PRODUCT_TAGLINE,
    REQUIRED_DATA_HINT,
    footer_lines,
    probability_style,
    severity_label,
    severity_style,
)

st.set_page_config(
    page_title="MedAssist AI - Rural Clinic Intake",
    page_icon="🩺",
    layout="wide"
)

# ============================================================================
# STYLING
# ============================================================================

st.markdown("""
<style>
    .main-title {
        font-size: 2.2em;
        font-weight: bold;
        margin-bottom: 0;
    }
    .subtitle {
        font-size: 0.95em;
        color: #666;
        margin-bottom: 10px;
    }
    .badge {
        display: inline-block;
        padding: 4px 12px;
        border-radius: 999px;
        margin-right: 8px;
        font-size: 0.85em;
        font-weight: 600;
    }
    .badge-critical { background-color: #fee2e2; color: #b91c1c; }
    .badge-online { background-color: #dcfce7; color: #15803d; }
    .badge-offline { background-color: #fef3c7; color: #b45309; }
    .badge-neutral { background-color: #e0f2fe; color: #0369a1; }
    .critical-box {
        background-color: #fef2f2;
        border-left: 4px solid #f87171;
        color: #991b1b;
        padding: 15px;
        border-radius: 6px;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)

COLOR_HEX = {
    "green": "#16a34a",
    "yellow": "#ca8a04",
    "orange": "#ea580c",
    "red": "#dc2626",
    "gray": "#4b5563",
}

# ============================================================================
# API HELPER
# ============================================================================

def api_call(method: str, path: str, **kwargs):
    """Call the backend; errors come back as {"error": ...}"""
    try:
        response = requests.request(
            method,
            f"{BACKEND_URL}{path}",
            timeout=REQUEST_TIMEOUT,
            **kwargs
        )
        if response.status_code == 200:
            return response.json()
        try:
            detail = response.json().get("detail", response.text)
        except ValueError:
            detail = response.text
        return {"error": detail, "status_code": response.status_code}
    except requests.exceptions.ConnectionError:
        return {"error": f"Cannot connect to backend at {BACKEND_URL}. Start it with: python backend.py"}
    except requests.exceptions.Timeout:
        return {"error": f"Backend timeout (>{REQUEST_TIMEOUT}s)"}
    except Exception as e:
        return {"error": str(e)}


def show_error(result) -> bool:
    if isinstance(result, dict) and "error" in result:
        st.error(f"❌ {result['error']}")
        return True
    return False

# ============================================================================
# SESSION STATE
# ============================================================================

def ensure_session():
    """Open a backend session once per browser tab, reopening it after a backend restart"""
    session_id = st.session_state.get("session_id")
    if session_id:
        snapshot = api_call("GET", f"/sessions/{session_id}")
        if snapshot.get("status_code") != 404:
            return snapshot

    snapshot = api_call("POST", "/sessions")
    if "error" not in snapshot:
        st.session_state.session_id = snapshot["session_id"]
    return snapshot


if "notice" not in st.session_state:
    st.session_state.notice = None

snapshot = ensure_session()
if show_error(snapshot):
    st.stop()

SESSION_PATH = f"/sessions/{st.session_state.session_id}"

# ============================================================================
# CALLBACKS (one backend update per edited field)
# ============================================================================

def save_patient_field(field: str):
    result = api_call("PUT", f"{SESSION_PATH}/patient/{field}", json={"value": st.session_state[f"patient_{field}"]})
    if "error" in result:
        st.session_state.notice = result["error"]


def save_vital(field: str):
    result = api_call("PUT", f"{SESSION_PATH}/vitals/{field}", json={"value": st.session_state[f"vital_{field}"]})
    if "error" in result:
        st.session_state.notice = result["error"]


def add_symptom(name: str):
    if name and name.strip():
        api_call("POST", f"{SESSION_PATH}/symptoms", json={"name": name.strip()})


def add_custom_symptom():
    add_symptom(st.session_state.get("new_symptom", ""))
    st.session_state.new_symptom = ""


def save_symptom(symptom_id: str, field: str):
    value = st.session_state[f"symptom_{field}_{symptom_id}"]
    result = api_call("PATCH", f"{SESSION_PATH}/symptoms/{symptom_id}", json={"field": field, "value": value})
    if "error" in result:
        st.session_state.notice = result["error"]


def remove_symptom(symptom_id: str):
    api_call("DELETE", f"{SESSION_PATH}/symptoms/{symptom_id}")


def save_image(image_id: str, field: str):
    value = st.session_state[f"image_{field}_{image_id}"]
    result = api_call("PATCH", f"{SESSION_PATH}/images/{image_id}", json={"field": field, "value": value})
    if "error" in result:
        st.session_state.notice = result["error"]


def remove_image(image_id: str):
    api_call("DELETE", f"{SESSION_PATH}/images/{image_id}")


def show_preview(image_id: str):
    api_call("PUT", f"{SESSION_PATH}/preview", json={"image_id": image_id})


def close_preview():
    api_call("DELETE", f"{SESSION_PATH}/preview")


def run_analysis():
    result = api_call("POST", f"{SESSION_PATH}/analyze")
    if "error" in result:
        st.session_state.notice = result["error"]


def decode_preview(preview_url: str) -> bytes:
    """data:image/png;base64,XXXX -> raw bytes"""
    _, _, encoded = preview_url.partition(",")
    return base64.b64decode(encoded)

# ============================================================================
# HEADER
# ============================================================================

status = api_call("GET", f"{SESSION_PATH}/status")

header_left, header_right = st.columns([2, 3])
with header_left:
    st.markdown(f'<div class="main-title">🩺 {PRODUCT_NAME}</div>', unsafe_allow_html=True)
    st.markdown(f'<div class="subtitle">{PRODUCT_TAGLINE}</div>', unsafe_allow_html=True)

with header_right:
    if "error" not in status:
        badge_html = []
        for badge in status["badges"]:
            if badge.endswith("Critical"):
                css = "badge-critical"
                badge = f"🔔 {badge}"
            elif badge == "Online":
                css = "badge-online"
            elif badge == "Offline" or badge.endswith("pending sync"):
                css = "badge-offline"
            else:
                css = "badge-neutral"
            badge_html.append(f'<span class="badge {css}">{badge}</span>')
        st.markdown("".join(badge_html), unsafe_allow_html=True)

if st.session_state.notice:
    st.error(f"⚠️ {st.session_state.notice}")
    st.session_state.notice = None

st.markdown("---")

analysis = snapshot["analysis"]
is_running = analysis["state"] == "running"

input_col, results_col = st.columns(2)

# ============================================================================
# LEFT COLUMN: DATA INPUT
# ============================================================================

with input_col:
    # ------------------------------------------------------------------
    # Patient information
    # ------------------------------------------------------------------
    st.markdown("### 👤 Patient Information")
    patient = snapshot["patient"]

    col1, col2 = st.columns(2)
    with col1:
        st.text_input("Patient Name *", value=patient["name"], key="patient_name",
                      placeholder="Enter patient's full name",
                      on_change=save_patient_field, args=("name",))
        genders = [g.value for g in Gender]
        st.selectbox("Gender *", genders, index=genders.index(patient["gender"]), key="patient_gender",
                     format_func=lambda g: g.capitalize() if g else "Select Gender",
                     on_change=save_patient_field, args=("gender",))
    with col2:
        st.text_input("Age *", value=patient["age"], key="patient_age",
                      placeholder="Age in years",
                      on_change=save_patient_field, args=("age",))
        st.text_input("📞 Phone Number", value=patient["phone"], key="patient_phone",
                      placeholder="+91 XXXXX XXXXX",
                      on_change=save_patient_field, args=("phone",))

    st.text_input("📍 Village/Location", value=patient["village"], key="patient_village",
                  placeholder="Village name, District, State",
                  on_change=save_patient_field, args=("village",))
    st.text_area("📋 Medical History", value=patient["medical_history"], key="patient_medical_history",
                 placeholder="Previous illnesses, surgeries, chronic conditions...",
                 on_change=save_patient_field, args=("medical_history",))

    col1, col2 = st.columns(2)
    with col1:
        st.text_area("Current Medications", value=patient["current_medications"], key="patient_current_medications",
                     placeholder="List current medications and dosages...",
                     on_change=save_patient_field, args=("current_medications",))
    with col2:
        st.text_area("Known Allergies", value=patient["allergies"], key="patient_allergies",
                     placeholder="Drug allergies, food allergies, etc...",
                     on_change=save_patient_field, args=("allergies",))

    # ------------------------------------------------------------------
    # Vital signs
    # ------------------------------------------------------------------
    st.markdown("### 📊 Vital Signs")
    vitals = snapshot["vitals"]

    col1, col2, col3 = st.columns(3)
    with col1:
        st.text_input("🌡️ Temperature (°F)", value=vitals["temperature"], key="vital_temperature",
                      placeholder="98.6", on_change=save_vital, args=("temperature",))
        st.text_input("Respiratory Rate", value=vitals["respiratory_rate"], key="vital_respiratory_rate",
                      placeholder="16", on_change=save_vital, args=("respiratory_rate",))
    with col2:
        st.text_input("Blood Pressure", value=vitals["blood_pressure"], key="vital_blood_pressure",
                      placeholder="120/80", on_change=save_vital, args=("blood_pressure",))
        st.text_input("Oxygen Saturation (%)", value=vitals["oxygen_saturation"], key="vital_oxygen_saturation",
                      placeholder="98", on_change=save_vital, args=("oxygen_saturation",))
    with col3:
        st.text_input("Heart Rate (bpm)", value=vitals["heart_rate"], key="vital_heart_rate",
                      placeholder="72", on_change=save_vital, args=("heart_rate",))

    # ------------------------------------------------------------------
    # Symptoms
    # ------------------------------------------------------------------
    st.markdown("### 🩹 Symptoms")
    symptoms = snapshot["symptoms"]
    listed = {s["name"] for s in symptoms}

    st.caption("Common Symptoms (Click to Add):")
    per_row = 5
    for start in range(0, len(COMMON_SYMPTOMS), per_row):
        row = st.columns(per_row)
        for col, name in zip(row, COMMON_SYMPTOMS[start:start + per_row]):
            with col:
                st.button(name, key=f"common_{name}", disabled=name in listed,
                          on_click=add_symptom, args=(name,), use_container_width=True)

    col1, col2 = st.columns([4, 1])
    with col1:
        st.text_input("Custom symptom", key="new_symptom", placeholder="Type custom symptom...",
                      label_visibility="collapsed", on_change=add_custom_symptom)
    with col2:
        st.button("➕ Add", on_click=add_custom_symptom, use_container_width=True)

    if symptoms:
        st.caption("Current Symptoms:")
        severities = [s.value for s in SymptomSeverity]
        for symptom in symptoms:
            sid = symptom["id"]
            col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
            with col1:
                st.write(f"**{symptom['name']}**")
            with col2:
                st.selectbox("Severity", severities, index=severities.index(symptom["severity"]),
                             key=f"symptom_severity_{sid}", format_func=str.capitalize,
                             label_visibility="collapsed",
                             on_change=save_symptom, args=(sid, "severity"))
            with col3:
                st.text_input("Duration", value=symptom["duration"], key=f"symptom_duration_{sid}",
                              placeholder="Duration", label_visibility="collapsed",
                              on_change=save_symptom, args=(sid, "duration"))
            with col4:
                st.button("✖", key=f"remove_symptom_{sid}", on_click=remove_symptom, args=(sid,))

    # ------------------------------------------------------------------
    # Medical imaging
    # ------------------------------------------------------------------
    st.markdown("### 🖼️ Medical Imaging")
    st.caption("X-rays, Ultrasounds, CT Scans, or Photos")

    uploads = st.file_uploader("Upload Medical Images", accept_multiple_files=True, key="image_uploads")
    if st.button("📤 Upload Selected Files", disabled=not uploads):
        files = [("files", (f.name, f.getvalue(), f.type or "application/octet-stream")) for f in uploads]
        show_error(api_call("POST", f"{SESSION_PATH}/images", files=files))
        st.rerun()

    image_labels = {
        ImageType.PHOTO.value: "Clinical Photo",
        ImageType.XRAY.value: "X-Ray",
        ImageType.ULTRASOUND.value: "Ultrasound",
        ImageType.SCAN.value: "CT/MRI Scan",
    }
    image_types = list(image_labels)

    for image in snapshot["images"]:
        iid = image["id"]
        col1, col2, col3 = st.columns([1, 3, 1])
        with col1:
            st.image(decode_preview(image["preview_url"]), width=80)
            st.button("👁️ View", key=f"preview_{iid}", on_click=show_preview, args=(iid,))
        with col2:
            st.selectbox("Image Type", image_types, index=image_types.index(image["image_type"]),
                         key=f"image_image_type_{iid}", format_func=image_labels.get,
                         on_change=save_image, args=(iid, "image_type"))
            st.text_area("Description/Notes", value=image["description"], key=f"image_description_{iid}",
                         placeholder="Describe the image, body part, or any relevant notes...",
                         on_change=save_image, args=(iid, "description"))
        with col3:
            st.button("✖ Remove", key=f"remove_image_{iid}", on_click=remove_image, args=(iid,))

    preview_id = snapshot["preview_image_id"]
    if preview_id:
        preview = next((i for i in snapshot["images"] if i["id"] == preview_id), None)
        if preview:
            st.markdown("#### 🔍 Preview")
            st.image(decode_preview(preview["preview_url"]))
            st.button("✖ Close Preview", on_click=close_preview)

    # ------------------------------------------------------------------
    # Analyze
    # ------------------------------------------------------------------
    st.markdown("---")
    st.button(
        "🧠 Analyzing..." if is_running else "🧠 Generate AI Diagnosis",
        disabled=not analysis["has_required_data"] or is_running,
        on_click=run_analysis,
        type="primary",
        use_container_width=True,
    )
    if not analysis["has_required_data"]:
        st.caption(REQUIRED_DATA_HINT)

# ============================================================================
# RIGHT COLUMN: RESULTS
# ============================================================================

def colored(text: str, color: str) -> str:
    return f'<span style="color:{COLOR_HEX.get(color, COLOR_HEX["gray"])};font-weight:600">{text}</span>'


with results_col:
    view = api_call("GET", f"{SESSION_PATH}/results")

    if show_error(view):
        pass
    elif view["phase"] == "analyzing":
        st.markdown(f"### 🧠 {view['headline']}")
        st.write(view["message"])
        st.progress(60)
    elif view["phase"] == "empty":
        st.info(f"🧠 {view['message']}")
    else:
        if view["critical_alerts"]:
            items = "".join(f"<p>• {c}</p>" for c in view["critical_alerts"])
            st.markdown(
                f'<div class="critical-box"><b>⚠️ Critical Alert - Immediate Action Required</b>'
                f'{items}<p>{view["critical_action"]}</p></div>',
                unsafe_allow_html=True,
            )

        st.markdown(f"### 🧠 {view['headline']}")
        if view["generated_at"]:
            st.caption(f"🕒 Generated at {view['generated_at'][11:19]}")

        summary = pd.DataFrame([
            {
                "Condition": d["condition"],
                "Probability": f"{d['probability']}%",
                "Severity": d["severity"].capitalize(),
                "Referral": "Yes" if d["referral_needed"] else "No",
            }
            for d in view["diagnoses"]
        ])
        st.dataframe(summary, hide_index=True, use_container_width=True)

        for rank, diagnosis in enumerate(view["diagnoses"], 1):
            with st.expander(f"#{rank} {diagnosis['condition']}", expanded=rank == 1):
                st.markdown(
                    f"Probability: {colored(str(diagnosis['probability']) + '%', probability_style(diagnosis['probability']))}"
                    f" &nbsp;|&nbsp; {colored(severity_label(diagnosis['severity']), severity_style(diagnosis['severity']))}",
                    unsafe_allow_html=True,
                )

                col1, col2 = st.columns(2)
                with col1:
                    st.markdown("**Clinical Reasoning**")
                    st.write(diagnosis["reasoning"])
                    st.markdown("**Referral Status**")
                    if diagnosis["referral_needed"]:
                        st.markdown(colored("👥 Specialist Referral Recommended", "orange"), unsafe_allow_html=True)
                    else:
                        st.markdown(colored("📍 Can be managed locally", "green"), unsafe_allow_html=True)
                with col2:
                    st.markdown("**Recommended Tests**")
                    for test in diagnosis["recommended_tests"]:
                        st.write(f"✅ {test}")
                    st.markdown("**Treatment Considerations**")
                    for treatment in diagnosis["treatment_options"]:
                        st.write(f"• {treatment}")

    if "error" not in view:
        st.warning(f"**{view['disclaimer_title']}**\n\n{view['disclaimer']}")

# ============================================================================
# FOOTER
# ============================================================================

st.markdown("---")
for line in footer_lines():
    st.caption(line)

# Poll until the running analysis publishes its results
if is_running:
    time.sleep(1)
    st.rerun()
