"""Fixed instruction set sent as the system turn of every analysis request."""
from dataclasses import dataclass


@dataclass(frozen=True)
class InstructionSection:
    key: str
    heading: str
    requirement: str


@dataclass(frozen=True)
class AnalysisInstructions:
    version: str
    sections: tuple[InstructionSection, ...]
    user_label: str = "Here is the embryo image I uploaded."

    @property
    def headings(self) -> tuple[str, ...]:
        return tuple(s.heading for s in self.sections)

    def render(self) -> str:
        lines = [
            "Analyze the uploaded embryo image and provide a detailed explanation.",
            "The response should include:",
        ]
        for section in self.sections:
            lines.append(f"- **{section.heading}**: {section.requirement}")
        lines += [
            "",
            "**Format the response in Markdown as follows:**",
            "- Use a level-two heading (e.g. `## Key Structures`) for each section above, in that order.",
            "- Use bullet points for sub-points.",
            "- Ensure the response is concise, clear, and easy to read.",
        ]
        return "\n".join(lines)


EMBRYO_ANALYSIS_INSTRUCTIONS = AnalysisInstructions(
    version="2",
    sections=(
        InstructionSection(
            "structures",
            "Key Structures",
            "identify the zona pellucida, inner cell mass (ICM), and trophectoderm (TE).",
        ),
        InstructionSection(
            "stage",
            "Developmental Stage",
            "classify the stage (cleavage, morula, blastocyst) with visual and structural evidence.",
        ),
        InstructionSection(
            "grading",
            "Embryo Grading",
            "give a general grade based on visible traits or a qualitative description "
            "(e.g., high, medium, low quality).",
        ),
        InstructionSection(
            "abnormalities",
            "Abnormalities",
            "describe observed abnormalities, such as fragmentation or irregular cell division.",
        ),
        InstructionSection(
            "probability",
            "Success Probability",
            "give a general overview of success probabilities based on implantation factors, "
            "explicitly noting that this is for informational purposes only and is not medical advice.",
        ),
        InstructionSection(
            "conclusion",
            "Conclusion",
            "summarize the overall assessment in a few sentences.",
        ),
    ),
)
