from apiharness.steps.rest_steps import *  # noqa: F401,F403
