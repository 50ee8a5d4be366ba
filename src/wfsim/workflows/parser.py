import json
import typing as tp
import xml.etree.ElementTree as ET

import networkx as nx

from .file import File
from .instance import Workflow
from .task import Task


class TraceParser:
    """Base class for workflow trace parsers. Subclasses collect jobs
    (runtime, files, parents) and this class turns them into a Workflow
    instance with derived execution and transfer times.
    """

    def __init__(
            self,
            filename: str,
            bandwidth_mbps: float,
            arrival_time: float = 0.0,
            variance_factor: float = 0.0,
    ) -> None:
        """

        :param filename: file with a trace.
        :param bandwidth_mbps: network bandwidth for transfer times.
        :param arrival_time: time of workflow submission.
        :param variance_factor: ratio of runtime standard deviation to
        its mean.
        """

        if bandwidth_mbps <= 0:
            raise ValueError(f"Bandwidth should be positive, "
                             f"got {bandwidth_mbps}")

        self.filename = filename
        self.bandwidth_mbps = bandwidth_mbps
        self.arrival_time = arrival_time
        self.variance_factor = variance_factor

        # Map from job name to its runtime, input and output files.
        self._runtimes: dict[str, float] = dict()
        self._input_files: dict[str, list[File]] = dict()
        self._output_files: dict[str, list[File]] = dict()
        # List of (parent, child) names.
        self._edges: list[tp.Tuple[str, str]] = []

        self.workflow: Workflow = self._parse()

    def _parse(self) -> Workflow:
        raise NotImplementedError

    def _add_job(
            self,
            name: str,
            runtime: float,
            input_files: list[File],
            output_files: list[File],
    ) -> None:
        if name in self._runtimes:
            raise ValueError(f"Bad file structure. Duplicate job {name}")

        self._runtimes[name] = runtime
        self._input_files[name] = input_files
        self._output_files[name] = output_files

    def _build_workflow(self, name: str, description: str) -> Workflow:
        workflow = Workflow(
            name=name,
            arrival_time=self.arrival_time,
            description=description,
        )

        for job_name, runtime in self._runtimes.items():
            output_size = sum(
                f.size_in_megabits() for f in self._output_files[job_name]
            )

            task = Task(
                workflow_uuid=workflow.uuid,
                task_id=job_name,
                mean_execution_time=runtime,
                variance_execution_time=(self.variance_factor
                                         * runtime) ** 2,
                data_transfer_time=output_size / self.bandwidth_mbps,
            )
            workflow.add_task(task=task)

        for parent_name, child_name in self._edges:
            if (parent_name not in self._runtimes
                    or child_name not in self._runtimes):
                raise ValueError(
                    f"Bad file structure. Unknown job in dependency "
                    f"{parent_name} -> {child_name}"
                )

            if parent_name == child_name:
                raise ValueError(f"Workflow {name} has cyclic dependencies")

            # Some traces list the same dependency twice.
            if workflow.dag.has_edge(parent_name, child_name):
                continue

            workflow.add_dependency(parent_name, child_name)

            # Only files consumed by child are transferred to it.
            child_inputs = set(self._input_files[child_name])
            shared = [f for f in self._output_files[parent_name]
                      if f in child_inputs]
            if shared:
                parent = workflow.get_task(parent_name)
                parent.transfer_times[child_name] = sum(
                    f.transfer_time(self.bandwidth_mbps) for f in shared
                )

        if not nx.is_directed_acyclic_graph(workflow.dag):
            raise ValueError(f"Workflow {name} has cyclic dependencies")

        return workflow

    def get_workflow(self) -> Workflow:
        return self.workflow


class PegasusTraceParser(TraceParser):
    """Parser for Pegasus traces.
    Example trace: https://github.com/wfcommons/pegasus-traces/blob/master/1000genome/chameleon-cloud/1000genome-chameleon-10ch-100k-001.json

    Works with traces from wfcommons. Their trace format can be found
    here: https://github.com/wfcommons/workflow-schema/blob/master/wfcommons-schema.json
    """

    def _parse(self) -> Workflow:
        """Parse json from `filename` into a Workflow instance.

        :return: parsed workflow.
        """

        with open(self.filename) as f:
            data = json.load(f)

        workflow_json = (data.get("workflow")
                         if isinstance(data, dict)
                         else None)
        if not isinstance(workflow_json, dict):
            raise ValueError(f"Bad file structure. No workflow in "
                             f"{self.filename}")

        jobs = workflow_json.get("jobs", workflow_json.get("tasks"))
        if jobs is None:
            raise ValueError(f"Bad file structure. No jobs in "
                             f"{self.filename}")

        for job in jobs:
            # Process files. Sizes in traces are declared in KB.
            input_files: list[File] = []
            output_files: list[File] = []

            for job_file in job.get("files", []):
                file_obj = File(name=job_file["name"], size=job_file["size"])
                if job_file["link"] == "input":
                    input_files.append(file_obj)
                elif job_file["link"] == "output":
                    output_files.append(file_obj)

            # Process runtime.
            cores = job.get("cores") or 1
            runtime = float(job["runtime"]) / cores

            self._add_job(
                name=job["name"],
                runtime=runtime,
                input_files=input_files,
                output_files=output_files,
            )

            for parent_name in job.get("parents", []):
                self._edges.append((parent_name, job["name"]))

        return self._build_workflow(
            name=data.get("name", self.filename),
            description=data.get("description", ""),
        )


def _local_name(tag: str) -> str:
    # Drop `{namespace}` prefix of ElementTree tags.
    return tag.rsplit("}", 1)[-1]


class DaxParser(TraceParser):
    """Parser for Pegasus DAX files (XML), e.g. CyberShake_30.xml from
    Pegasus synthetic workflow gallery.

    Jobs are declared as `<job id runtime>` with `<uses>` file entries
    (sizes in bytes), dependencies as `<child ref>` with nested
    `<parent ref>` elements.
    """

    def _parse(self) -> Workflow:
        try:
            root = ET.parse(self.filename).getroot()
        except ET.ParseError as e:
            raise ValueError(f"Bad DAX file {self.filename}: {e}") from e

        for element in root:
            tag = _local_name(element.tag)

            if tag == "job":
                self._parse_job(element)
            elif tag == "child":
                child_name = element.attrib["ref"]
                for parent in element:
                    if _local_name(parent.tag) == "parent":
                        self._edges.append((parent.attrib["ref"], child_name))

        return self._build_workflow(
            name=root.attrib.get("name", self.filename),
            description=root.attrib.get("version", ""),
        )

    def _parse_job(self, element: ET.Element) -> None:
        input_files: list[File] = []
        output_files: list[File] = []

        for uses in element:
            if _local_name(uses.tag) != "uses":
                continue

            name = uses.attrib.get("file", uses.attrib.get("name"))
            file_obj = File.from_bytes(
                name=name,
                size=float(uses.attrib.get("size", 0)),
            )

            if uses.attrib.get("link") == "input":
                input_files.append(file_obj)
            elif uses.attrib.get("link") == "output":
                output_files.append(file_obj)

        self._add_job(
            name=element.attrib["id"],
            runtime=float(element.attrib["runtime"]),
            input_files=input_files,
            output_files=output_files,
        )


class WorkflowSetParser:
    """Parser for XML files with several workflows and explicit task
    statistics:

        <workflows>
          <workflow id arrivalTime deadline>
            <task id meanExecutionTime varianceExecutionTime
                  dataTransferTime/>
            <dependency from to/>
          </workflow>
        </workflows>

    Unlike traces, arrival time, deadline and runtime variance are taken
    from the file as is.
    """

    def __init__(self, filename: str) -> None:
        self.filename = filename
        self.workflows: list[Workflow] = self._parse()

    def _parse(self) -> list[Workflow]:
        try:
            root = ET.parse(self.filename).getroot()
        except ET.ParseError as e:
            raise ValueError(f"Bad workflow file {self.filename}: {e}") from e

        elements = [element for element in root.iter()
                    if _local_name(element.tag) == "workflow"]
        if not elements:
            raise ValueError(f"Bad file structure. No workflows in "
                             f"{self.filename}")

        return [self._parse_workflow(element) for element in elements]

    def _attribute(self, element: ET.Element, name: str) -> str:
        if name not in element.attrib:
            raise ValueError(
                f"Bad file structure. <{_local_name(element.tag)}> has no "
                f"`{name}` in {self.filename}"
            )

        return element.attrib[name]

    def _number(self, element: ET.Element, name: str) -> float:
        value = self._attribute(element, name)

        try:
            return float(value)
        except ValueError as e:
            raise ValueError(f"Bad value of `{name}` in {self.filename}: "
                             f"{value!r}") from e

    def _parse_workflow(self, element: ET.Element) -> Workflow:
        workflow = Workflow(
            name=self._attribute(element, "id"),
            arrival_time=self._number(element, "arrivalTime"),
            deadline=self._number(element, "deadline"),
        )

        for child in element:
            if _local_name(child.tag) != "task":
                continue

            task_id = self._attribute(child, "id")
            if task_id in workflow.dag:
                raise ValueError(f"Bad file structure. Duplicate task "
                                 f"{task_id} in {workflow.name}")

            workflow.add_task(Task(
                workflow_uuid=workflow.uuid,
                task_id=task_id,
                mean_execution_time=self._number(child, "meanExecutionTime"),
                variance_execution_time=self._number(
                    child, "varianceExecutionTime"
                ),
                data_transfer_time=self._number(child, "dataTransferTime"),
            ))

        for child in element:
            if _local_name(child.tag) != "dependency":
                continue

            parent_id = self._attribute(child, "from")
            child_id = self._attribute(child, "to")

            if parent_id not in workflow.dag or child_id not in workflow.dag:
                raise ValueError(
                    f"Bad file structure. Unknown task in dependency "
                    f"{parent_id} -> {child_id}"
                )

            if parent_id == child_id:
                raise ValueError(f"Workflow {workflow.name} has cyclic "
                                 f"dependencies")

            if workflow.dag.has_edge(parent_id, child_id):
                continue

            workflow.add_dependency(parent_id, child_id)

        if not nx.is_directed_acyclic_graph(workflow.dag):
            raise ValueError(f"Workflow {workflow.name} has cyclic "
                             f"dependencies")

        return workflow

    def get_workflows(self) -> list[Workflow]:
        return self.workflows


def is_dax_file(filename: str) -> bool:
    """Check whether XML file is Pegasus DAX (`<adag>` root) rather
    than set of workflows.

    :param filename: XML file.
    :return: True for DAX.
    """

    try:
        root = ET.parse(filename).getroot()
    except ET.ParseError as e:
        raise ValueError(f"Bad XML file {filename}: {e}") from e

    return _local_name(root.tag) == "adag"
