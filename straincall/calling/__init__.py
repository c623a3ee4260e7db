#!/usr/bin/env python

from straincall.calling.tools import ToolCall, ToolResult, run_tool
from straincall.calling.dispatch import dispatch
