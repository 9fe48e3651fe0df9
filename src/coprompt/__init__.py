"""
Git-aware shell prompt built from staged prompt filters

``coprompt`` renders a command prompt by passing it through a chain of
priority-ordered stages:

- the current working directory, in yellow
- the current Git branch, colored by the state of the working tree (green if
  clean, yellow if there are uncommitted changes, red if there are merge
  conflicts)
- a trailing ``>``

The slow parts of the Git check run as a background job on an asyncio event
loop, so a long-lived host (such as the bundled REPL) never blocks on Git
while drawing the prompt; until the job finishes, the branch is shown in the
last known color.
"""

__version__ = "0.1.0"
__license__ = "MIT"
