"""
Code runner module for AetherDebug
Runs JavaScript through a console-capturing node harness and simulates other languages
"""

import json
import os
import subprocess

from .models import ExecutionResult

NODE_BINARY = os.getenv("NODE_BINARY", "node")
JS_EXECUTION_TIMEOUT = float(os.getenv("JS_EXECUTION_TIMEOUT", "5"))

REPORT_MARKER = "__AETHER_REPORT__"

# Runs stdin as the body of a fresh function. Console methods are swapped for
# capturing wrappers that still forward to the originals, and are put back
# before the single report line is written.
JS_HARNESS = r"""
const chunks = [];
process.stdin.setEncoding('utf8');
process.stdin.on('data', (chunk) => chunks.push(chunk));
process.stdin.on('end', () => {
  const source = chunks.join('');
  const logs = [];
  const levels = ['log', 'error', 'warn', 'info', 'debug'];
  const original = {};
  const format = (args) => args.map((arg) => {
    try {
      return typeof arg === 'object' ? JSON.stringify(arg) : String(arg);
    } catch (e) {
      return 'Unserializable object';
    }
  }).join(' ');
  for (const level of levels) {
    original[level] = console[level];
    console[level] = (...args) => {
      const message = format(args);
      logs.push(level === 'log' ? message : `${level.toUpperCase()}: ${message}`);
      original[level].apply(console, args);
    };
  }
  const report = { ok: true, logs: logs, returnValue: null, error: null };
  try {
    const value = new Function(source)();
    if (value !== undefined) {
      report.returnValue = String(value);
    }
  } catch (e) {
    report.ok = false;
    report.error = {
      message: e && e.message !== undefined ? String(e.message) : String(e),
      stack: e && e.stack ? String(e.stack) : null,
    };
  } finally {
    for (const level of levels) {
      console[level] = original[level];
    }
  }
  // Pending timers must not keep the process alive once the body has returned
  process.stdout.write('\n' + '__AETHER_REPORT__' + JSON.stringify(report) + '\n', () => process.exit(0));
});
"""

NO_OUTPUT_MESSAGE = "JavaScript code executed successfully. No output logged to console."
LIVE_EXECUTION_NOTE = "(Note: Live execution is only available for JavaScript.)"
PYTHON_ZERO_DIVISION_TRIGGER = "print(divide(10, 0))"


def decode_output(data):
    """TimeoutExpired carries raw bytes even for text-mode runs"""
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def extract_report(stdout: str):
    """Split harness stdout into (forwarded console text, report dict or None)"""
    if not stdout:
        return "", None
    index = stdout.rfind(REPORT_MARKER)
    if index == -1:
        return stdout, None
    forwarded = stdout[:index].rstrip("\n")
    payload = stdout[index + len(REPORT_MARKER):].strip()
    try:
        return forwarded, json.loads(payload)
    except json.JSONDecodeError:
        return forwarded, None


def format_exception_output(message, stack, logs):
    """Build the output text for a run that threw"""
    logs = list(logs) + [f"EXCEPTION: {message}"]
    output = (
        f"Error executing JavaScript:\n{message}\n"
        f"Stack:\n{stack or 'No stack available'}\n\n"
        f"Captured Logs:\n" + "\n".join(logs)
    )
    return ExecutionResult(
        output=output,
        error_message=message,
        error_description=stack or "Error during JavaScript execution.",
        failed=True,
    )


def build_execution_result(report: dict) -> ExecutionResult:
    """Turn a harness report into the text shown in the output console"""
    logs = list(report.get("logs") or [])

    if not report.get("ok", False):
        error = report.get("error") or {}
        return format_exception_output(error.get("message", ""), error.get("stack"), logs)

    if report.get("returnValue") is not None:
        logs.append(f"Return value: {report['returnValue']}")

    output = "\n".join(logs)
    if not output:
        output = NO_OUTPUT_MESSAGE
    return ExecutionResult(output=output)


def run_javascript(code: str, timeout: float = None) -> ExecutionResult:
    """Execute JavaScript in a fresh function scope inside a node process"""
    timeout = JS_EXECUTION_TIMEOUT if timeout is None else timeout
    print("🚀 Running JavaScript in node harness...")
    try:
        proc = subprocess.run(
            [NODE_BINARY, "-e", JS_HARNESS],
            input=code,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        # The function body may have finished and reported before the timeout
        _, report = extract_report(decode_output(e.stdout))
        if report is not None:
            print("⚠️ node did not exit after reporting; using its report")
            return build_execution_result(report)
        print(f"❌ JavaScript execution timed out after {timeout}s")
        return format_exception_output(f"Execution timed out after {timeout} seconds", None, [])
    except FileNotFoundError:
        print(f"❌ Node.js runtime not found: {NODE_BINARY}")
        return format_exception_output(f"Node.js runtime not found ({NODE_BINARY})", None, [])

    forwarded, report = extract_report(proc.stdout)
    if forwarded:
        print(forwarded)
    if proc.stderr:
        print(proc.stderr, end="")

    if report is None:
        # Harness never reached its report line, e.g. the process was killed
        stderr = (proc.stderr or "").strip()
        message = stderr.splitlines()[-1] if stderr else f"node exited with code {proc.returncode}"
        print(f"❌ No execution report from node (exit code {proc.returncode})")
        return format_exception_output(message, stderr or None, [])

    result = build_execution_result(report)
    if result.failed:
        print(f"⚠️ JavaScript raised: {result.error_message}")
    else:
        print("✅ JavaScript execution completed")
    return result


def simulate_execution(code: str, language: str) -> ExecutionResult:
    """Canned stand-in for languages that cannot run locally"""
    output = (
        f"Simulating {language} execution...\n{LIVE_EXECUTION_NOTE}\n"
        "Encountered a simulated error. Check AI Debugger for analysis."
    )
    error_message = f"Simulated {language} error."
    error_description = f"A generic error occurred during simulated {language} execution."

    if language == "python":
        if PYTHON_ZERO_DIVISION_TRIGGER in code:
            error_message = "ZeroDivisionError: division by zero"
            error_description = (
                "Traceback (most recent call last):\n"
                "  File \"<string>\", line 5, in <module>\n"
                "  File \"<string>\", line 2, in divide\n"
                "ZeroDivisionError: division by zero"
            )
            output = (
                f"Simulating Python execution...\n{LIVE_EXECUTION_NOTE}\n"
                f"Error: {error_message}\nSee AI Debugger for analysis."
            )
        else:
            output = (
                f"Simulating {language} execution...\n{LIVE_EXECUTION_NOTE}\n"
                "No specific error simulated for this code. AI will analyze the code structure."
            )

    print(f"🧪 Simulated {language} run")
    return ExecutionResult(
        output=output,
        error_message=error_message,
        error_description=error_description,
        failed=True,
    )
