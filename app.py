import logging
import traceback

import matplotlib.pyplot as plt
import streamlit as st

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

# ==============================
# STREAMLIT PAGE SETUP
# ==============================
st.set_page_config(
    page_title="PID Controller",
    layout="wide"
)

st.title("PID Controller")
st.write("Interactive tuning of a discrete PID controller against a first-order plant")

# ==============================
# SAFE IMPORT OF PID CONTROLLER
# ==============================
try:
    from pid_core import PIDController
    from simulation import FirstOrderPlant, simulate
except Exception:
    st.error("❌ Failed to import PID controller from `pid_core.py`")
    st.code(traceback.format_exc())
    st.stop()

# ==============================
# SIDEBAR CONTROLS
# ==============================
st.sidebar.header("PID Parameters")

# gains are per sample, the controller has no time base
kp = st.sidebar.slider("Kp (Proportional)", 0.0, 10.0, 1.0, 0.1)
ki = st.sidebar.slider("Ki (Integral)", 0.0, 0.5, 0.0, 0.005)
kd = st.sidebar.slider("Kd (Derivative)", 0.0, 50.0, 0.0, 0.5)

st.sidebar.divider()

setpoint = st.sidebar.slider("Setpoint", 0.0, 10.0, 5.0, 0.1)
output_min, output_max = st.sidebar.slider("Output Bounds", -100.0, 100.0, (-100.0, 100.0), 1.0)
st.sidebar.caption("Equal bounds leave the output unconstrained.")

st.sidebar.divider()

tau = st.sidebar.slider("Plant Time Constant (s)", 0.1, 5.0, 1.0, 0.1)
simulation_time = st.sidebar.slider("Simulation Time (s)", 2.0, 20.0, 10.0, 1.0)

clear_warnings = st.sidebar.button("🧹 Clear Bound Warnings")

# ==============================
# INITIALIZE PID
# ==============================
if clear_warnings:
    st.session_state.pop("config_errors", None)

if "pid" not in st.session_state:
    st.session_state.pid = PIDController(
        on_config_error=lambda report: st.session_state.setdefault("config_errors", []).append(str(report))
    )

pid = st.session_state.pid

# Push slider values into the controller
pid.kp = kp
pid.ki = ki
pid.kd = kd
pid.setpoint = setpoint
pid.set_output_limits(output_min, output_max)

# every rerun simulates from rest, so the loop always starts clean
pid.reset()

# ==============================
# SIMULATION PARAMETERS
# ==============================
dt = 0.01
steps = int(simulation_time / dt)
plant = FirstOrderPlant(tau=tau)

# ==============================
# RUN SIMULATION (WITH SAFETY)
# ==============================
try:
    result = simulate(pid, plant, steps, dt)
except Exception:
    st.error("❌ Error occurred during PID simulation")
    st.code(traceback.format_exc())
    st.stop()

for message in st.session_state.get("config_errors", []):
    st.warning(message)

# ==============================
# PLOTS
# ==============================
col1, col2 = st.columns(2)

with col1:
    st.subheader("System Output")

    fig1, ax1 = plt.subplots()
    ax1.plot(result.time, result.output, label="Output")
    ax1.plot(result.time, [setpoint] * len(result.time), "--", label="Setpoint")
    ax1.set_xlabel("Time (s)")
    ax1.set_ylabel("Value")
    ax1.legend()
    ax1.grid(True)

    st.pyplot(fig1)

with col2:
    st.subheader("Control Signal")

    fig2, ax2 = plt.subplots()
    ax2.plot(result.time, result.control, label="Control Output (u)")
    if pid.is_output_constrained():
        ax2.axhline(pid.output_max, color="r", linestyle=":", label="Bounds")
        ax2.axhline(pid.output_min, color="r", linestyle=":")
    ax2.set_xlabel("Time (s)")
    ax2.set_ylabel("Control Effort")
    ax2.legend()
    ax2.grid(True)

    st.pyplot(fig2)

# ==============================
# ERROR AND TERM PLOTS
# ==============================
col3, col4 = st.columns(2)

with col3:
    st.subheader("Tracking Error")

    fig3, ax3 = plt.subplots()
    ax3.plot(result.time, result.error, label="Error (Setpoint − Output)")
    ax3.set_xlabel("Time (s)")
    ax3.set_ylabel("Error")
    ax3.grid(True)

    st.pyplot(fig3)

with col4:
    st.subheader("PID Terms")

    fig4, ax4 = plt.subplots()
    ax4.plot(result.time, result.p, label="P")
    ax4.plot(result.time, result.i, label="I")
    ax4.plot(result.time, result.d, label="D")
    ax4.set_xlabel("Time (s)")
    ax4.set_ylabel("Contribution")
    ax4.legend()
    ax4.grid(True)

    st.pyplot(fig4)

# ==============================
# DEBUG / INTERNAL STATE VIEW
# ==============================
with st.expander("🛠 Debug / Internal PID State"):
    state = pid.state()
    st.write("PID Gains")
    st.json({
        "Kp": state.kp,
        "Ki": state.ki,
        "Kd": state.kd
    })

    st.write(f"Output Constrained: `{pid.is_output_constrained()}`")
    st.write(f"Error Sum: `{state.error_sum}`")
    st.write(f"Previous Measurement: `{state.previous_measurement}`")

    st.write(f"Final Output Value: `{result.output[-1]}`")
    st.write(f"Final Error: `{result.error[-1]}`")

# ==============================
# TUNING HELP
# ==============================
st.markdown("""
### PID Tuning Notes
- **Kp**: Increases responsiveness, too high → oscillations
- **Ki**: Eliminates steady-state error; the accumulator is cut back to the current error whenever the output saturates
- **Kd**: Acts on the measurement, not the error, so setpoint steps do not kick the output

💡 Use the **error plot** to judge tuning quality.
""")
