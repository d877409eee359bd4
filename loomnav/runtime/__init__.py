"""Runtime orchestration: session state, actions, controller and main loop."""
