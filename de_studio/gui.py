from __future__ import annotations

import os
import tkinter as tk
from tkinter import filedialog, messagebox, ttk
from typing import Dict, Optional

from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg, NavigationToolbar2Tk
from matplotlib.figure import Figure

from .controller import PARAMETER_LABELS, PARAMETER_RANGES, ConfigError, DEConfig, RunController
from .plotting import RunFigure
from .report import format_iteration_details, format_log_table
from .utils import ensure_dir, now_stamp, safe_float, safe_int


class DEStudioApp(tk.Tk):
    def __init__(self, controller: Optional[RunController] = None, autostart: bool = True) -> None:
        super().__init__()

        self.title("DE Studio: Differential Evolution on Rosenbrock")
        self.geometry("1500x940")
        self.minsize(1200, 800)

        self.controller = controller if controller is not None else RunController()

        self.status_var = tk.StringVar(value="Ready")
        self.run_button_var = tk.StringVar(value="Start")
        self.show_paths_var = tk.BooleanVar(value=True)
        self.show_labels_var = tk.BooleanVar(value=False)
        self.param_vars: Dict[str, tk.StringVar] = {}

        self._after_id: Optional[str] = None

        self._build_layout()
        self._build_toolbar()
        self._build_controls()
        self._build_plot()
        self._build_statusbar()

        self._sync_form_from_config()
        self._unsubscribe = self.controller.subscribe(lambda _c: self._refresh())
        self._refresh()

        self.protocol("WM_DELETE_WINDOW", self.on_close)
        if autostart:
            self.on_toggle_run()

    def _build_layout(self) -> None:
        self.toolbar_frame = ttk.Frame(self)
        self.toolbar_frame.pack(side=tk.TOP, fill=tk.X)

        self.main_pane = ttk.Panedwindow(self, orient=tk.HORIZONTAL)
        self.main_pane.pack(side=tk.TOP, fill=tk.BOTH, expand=True)

        self.plot_container = ttk.Frame(self.main_pane)
        self.controls_container = ttk.Frame(self.main_pane, width=520)

        self.main_pane.add(self.plot_container, weight=4)
        self.main_pane.add(self.controls_container, weight=3)

    def _build_toolbar(self) -> None:
        ttk.Button(self.toolbar_frame, textvariable=self.run_button_var, command=self.on_toggle_run).pack(
            side=tk.LEFT, padx=3, pady=4
        )
        ttk.Button(self.toolbar_frame, text="Step Forward", command=self.on_step).pack(side=tk.LEFT, padx=3, pady=4)
        ttk.Button(self.toolbar_frame, text="Reset", command=self.on_reset).pack(side=tk.LEFT, padx=3, pady=4)

        ttk.Separator(self.toolbar_frame, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=6, pady=3)

        ttk.Button(self.toolbar_frame, text="Export PNG", command=self.on_export_png).pack(side=tk.LEFT, padx=3, pady=4)
        ttk.Button(self.toolbar_frame, text="Close", command=self.on_close).pack(side=tk.LEFT, padx=3, pady=4)

    def _build_controls(self) -> None:
        top = ttk.Frame(self.controls_container)
        top.pack(side=tk.TOP, fill=tk.BOTH, expand=True)

        param_frame = ttk.LabelFrame(top, text="Parameters")
        param_frame.pack(side=tk.TOP, fill=tk.X, padx=8, pady=6)

        for row, (name, limits) in enumerate(PARAMETER_RANGES.items()):
            var = tk.StringVar()
            self.param_vars[name] = var
            ttk.Label(param_frame, text=f"{PARAMETER_LABELS[name]} ({limits.symbol})").grid(
                row=row, column=0, sticky="w", padx=4, pady=2
            )
            ent = ttk.Entry(param_frame, textvariable=var, width=10)
            ent.grid(row=row, column=1, sticky="w", padx=4, pady=2)
            ent.bind("<Return>", lambda _e: self.on_apply_parameters())
            ent.bind("<FocusOut>", lambda _e: self.on_apply_parameters())
            ttk.Label(param_frame, text=limits.constraint_text(), foreground="#555555").grid(
                row=row, column=2, sticky="w", padx=4, pady=2
            )
        param_frame.columnconfigure(2, weight=1)

        vis_frame = ttk.LabelFrame(top, text="Visualization")
        vis_frame.pack(side=tk.TOP, fill=tk.X, padx=8, pady=6)
        ttk.Checkbutton(vis_frame, text="Show dashed movement paths", variable=self.show_paths_var, command=self._redraw).pack(
            side=tk.TOP, anchor="w", padx=4, pady=2
        )
        ttk.Checkbutton(vis_frame, text="Show individual number labels", variable=self.show_labels_var, command=self._redraw).pack(
            side=tk.TOP, anchor="w", padx=4, pady=2
        )

        log_frame = ttk.LabelFrame(top, text="Iteration log")
        log_frame.pack(side=tk.TOP, fill=tk.BOTH, expand=True, padx=8, pady=6)

        self.log_text = tk.Text(log_frame, wrap="none", font=("TkFixedFont", 9), height=30)
        scroll_y = ttk.Scrollbar(log_frame, orient=tk.VERTICAL, command=self.log_text.yview)
        scroll_x = ttk.Scrollbar(log_frame, orient=tk.HORIZONTAL, command=self.log_text.xview)
        self.log_text.configure(yscrollcommand=scroll_y.set, xscrollcommand=scroll_x.set, state="disabled")
        scroll_y.pack(side=tk.RIGHT, fill=tk.Y)
        scroll_x.pack(side=tk.BOTTOM, fill=tk.X)
        self.log_text.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)

    def _build_plot(self) -> None:
        self.figure = Figure(figsize=(8.0, 9.0), dpi=100)
        self.run_figure = RunFigure(self.figure, resolution=120)

        self.canvas = FigureCanvasTkAgg(self.figure, master=self.plot_container)
        self.canvas.get_tk_widget().pack(side=tk.TOP, fill=tk.BOTH, expand=True)

        self.mpl_toolbar = NavigationToolbar2Tk(self.canvas, self.plot_container, pack_toolbar=False)
        self.mpl_toolbar.update()
        self.mpl_toolbar.pack(side=tk.TOP, fill=tk.X)

    def _build_statusbar(self) -> None:
        bar = tk.Frame(self, bd=1, relief=tk.SUNKEN, bg="#1f1f1f")
        bar.pack(side=tk.BOTTOM, fill=tk.X)
        tk.Label(bar, text="Status:", anchor="w", padx=8, pady=4, bg="#1f1f1f", fg="#f5f5f5").pack(side=tk.LEFT)
        tk.Label(bar, textvariable=self.status_var, anchor="w", padx=6, pady=4, bg="#1f1f1f", fg="#f5f5f5").pack(
            side=tk.LEFT, fill=tk.X, expand=True
        )

    def _sync_form_from_config(self) -> None:
        cfg = self.controller.config
        for name, var in self.param_vars.items():
            var.set(f"{getattr(cfg, name):g}")

    def _form_config(self) -> DEConfig:
        cfg = self.controller.config
        values = {}
        for name, limits in PARAMETER_RANGES.items():
            raw = self.param_vars[name].get()
            if limits.integer:
                values[name] = safe_int(raw, getattr(cfg, name))
            else:
                values[name] = safe_float(raw, getattr(cfg, name))
        return DEConfig(**values).clamped()

    def on_apply_parameters(self) -> None:
        new_cfg = self._form_config()
        old_cfg = self.controller.config
        changes = {
            name: getattr(new_cfg, name)
            for name in PARAMETER_RANGES
            if getattr(new_cfg, name) != getattr(old_cfg, name)
        }
        if not changes:
            self._sync_form_from_config()
            return
        try:
            self.controller.set_parameters(**changes)
        except ConfigError as exc:
            self.status_var.set(str(exc))
            return
        self._sync_form_from_config()
        self.status_var.set("Parameters updated: " + ", ".join(f"{k}={v:g}" for k, v in changes.items()))
        if "step_interval_ms" in changes and self.controller.running:
            self._schedule_tick()

    def on_toggle_run(self) -> None:
        self.controller.toggle()
        if self.controller.running:
            self._schedule_tick()
        else:
            self._cancel_tick()

    def on_step(self) -> None:
        self.controller.step()

    def on_reset(self) -> None:
        self._cancel_tick()
        self.controller.reset()
        self.status_var.set("Population reset.")

    def _schedule_tick(self) -> None:
        self._cancel_tick()
        self._after_id = self.after(self.controller.config.step_interval_ms, self._tick_loop)

    def _cancel_tick(self) -> None:
        if self._after_id is not None:
            self.after_cancel(self._after_id)
            self._after_id = None

    def _tick_loop(self) -> None:
        self._after_id = None
        if self.controller.tick():
            self._schedule_tick()

    def _refresh(self) -> None:
        c = self.controller
        self.run_button_var.set("Stop" if c.running else "Start")
        self._redraw()

        text = (
            format_log_table(c.trace, max_entries=4)
            + "\n\n"
            + format_iteration_details(c.generation, c.population, c.trace, c.config.F, c.config.CR)
        )
        self.log_text.configure(state="normal")
        self.log_text.delete("1.0", tk.END)
        self.log_text.insert("1.0", text)
        self.log_text.configure(state="disabled")

        self.status_var.set(
            f"{c.state} | generation={c.generation}/{c.config.max_iterations} | best_f={c.best_fitness:.6e}"
        )

    def _redraw(self) -> None:
        self.run_figure.update(
            self.controller,
            show_paths=self.show_paths_var.get(),
            show_labels=self.show_labels_var.get(),
        )
        self.canvas.draw_idle()

    def on_export_png(self) -> None:
        default_dir = os.path.join(os.getcwd(), "ioData")
        ensure_dir(default_dir)
        path = filedialog.asksaveasfilename(
            title="Export plot to PNG",
            initialdir=default_dir,
            initialfile=f"de_rosenbrock_{now_stamp()}.png",
            defaultextension=".png",
            filetypes=[("PNG", "*.png")],
        )
        if not path:
            return
        try:
            self.figure.savefig(path, dpi=180)
        except OSError as exc:
            messagebox.showerror("Export PNG", f"Failed to export plot:\n{exc}")
            return
        self.status_var.set(f"Plot exported: {path}")

    def on_close(self) -> None:
        self._cancel_tick()
        self._unsubscribe()
        self.controller.stop()
        self.destroy()
