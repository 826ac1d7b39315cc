"""Curated reference text loaded into the medical knowledge partition.

Each entry is stored under exactly one category; the query router and the
finding rules select knowledge by these category names.
"""

from __future__ import annotations

from typing import NamedTuple


class KnowledgeSource(NamedTuple):
    category: str
    source: str
    content: str


CARDIOVASCULAR = """\
# Cardiovascular Health

## Lipid Profile

### LDL Cholesterol
LDL cholesterol carries cholesterol into the artery wall, where it contributes
to plaque. When not measured directly it is estimated with the Friedewald
equation: LDL = Total Cholesterol - HDL - (Triglycerides / 5).
- Optimal: below 100 mg/dL
- Near optimal: 100-129 mg/dL
- Borderline high: 130-159 mg/dL
- High: 160-189 mg/dL
- Very high: 190 mg/dL and above

### HDL Cholesterol
HDL returns cholesterol to the liver for clearance. Levels of 40 mg/dL or more
in men and 50 mg/dL or more in women are acceptable; 60 mg/dL or more is
considered protective.

### Triglycerides
- Normal: below 150 mg/dL
- Borderline high: 150-199 mg/dL
- High: 200-499 mg/dL
- Very high: 500 mg/dL and above

### Total Cholesterol
Desirable below 200 mg/dL, borderline high 200-239 mg/dL, high at 240 mg/dL
and above.

## Inflammation and Risk
High-sensitivity C-reactive protein (hs-CRP) below 1.0 mg/L indicates low
cardiovascular risk, 1.0-3.0 mg/L average risk, and above 3.0 mg/L high risk.

## Risk Estimation
The Framingham score and the ACC/AHA pooled cohort equations estimate 10-year
cardiovascular risk from age, sex, cholesterol, HDL, blood pressure, diabetes
and smoking. Below 5% is low risk, 5-20% intermediate, above 20% high.

## Blood Pressure Categories
- Normal: below 120/80 mmHg
- Elevated: 120-129 systolic with diastolic below 80 mmHg
- Stage 1 hypertension: 130-139/80-89 mmHg
- Stage 2 hypertension: 140/90 mmHg or higher

## Prevention
Regular aerobic activity of at least 150 minutes per week, a diet low in
saturated fat, no tobacco, and moderate alcohol intake all lower risk.
"""

DIABETES = """\
# Diabetes and Metabolic Health

## HbA1c
HbA1c reflects average blood glucose over the previous two to three months.
- Normal: below 5.7%
- Prediabetes: 5.7-6.4%
- Diabetes: 6.5% or higher
- Usual treatment target: below 7% for most adults

Each 1% rise in HbA1c corresponds to roughly 28-30 mg/dL higher average
glucose; an HbA1c of 7% matches an average glucose near 154 mg/dL.

## Diagnostic Thresholds
- Fasting plasma glucose 126 mg/dL or higher
- Two-hour glucose 200 mg/dL or higher during an oral glucose tolerance test
- HbA1c 6.5% or higher
- Random glucose 200 mg/dL or higher with classic symptoms

## Risk Factors for Type 2 Diabetes
Age 45 or older, overweight or obesity, a parent or sibling with diabetes,
physical inactivity, prior gestational diabetes, polycystic ovary syndrome,
high blood pressure and abnormal lipids.

## Metabolic Syndrome
Three or more of: enlarged waist circumference, triglycerides of 150 mg/dL or
more, low HDL, blood pressure of 130/85 mmHg or more, fasting glucose of
100 mg/dL or more. It roughly doubles cardiovascular risk.
"""

LABORATORY = """\
# Laboratory Reference Values

## Complete Blood Count
- Hemoglobin: men 14-18 g/dL, women 12-16 g/dL
- Hematocrit: men 42-52%, women 37-47%
- White blood cell count: 4,500-11,000 cells/uL
- Platelet count: 150,000-450,000 cells/uL
- Mean corpuscular volume: 80-100 fL

## Metabolic Panel
- Fasting glucose: 70-100 mg/dL
- Blood urea nitrogen: 7-20 mg/dL
- Creatinine: men 0.74-1.35 mg/dL, women 0.59-1.04 mg/dL
- eGFR: above 60 mL/min/1.73m2 indicates normal kidney function
- Sodium: 136-144 mmol/L
- Potassium: 3.5-5.0 mmol/L

## Liver Function
- ALT: men below 41 U/L, women below 33 U/L
- AST: men below 40 U/L, women below 32 U/L
- Total bilirubin: 0.3-1.2 mg/dL
- Alkaline phosphatase: 44-147 U/L

## Cardiac Biomarkers
- Troponin I: below 0.04 ng/mL is normal
- BNP: below 100 pg/mL is normal, above 400 pg/mL suggests heart failure
- NT-proBNP: below 125 pg/mL is normal

## Thyroid Function
- TSH: 0.27-4.20 mIU/L
- Free T4: 12-22 pmol/L

## Inflammatory Markers
- CRP: below 3.0 mg/L
- ESR: men below 15 mm/hr, women below 20 mm/hr
"""

TREATMENT = """\
# Treatment Guidelines

## Statin Therapy
High-intensity regimens are atorvastatin 40-80 mg or rosuvastatin 20-40 mg
daily. Moderate-intensity regimens include atorvastatin 10-20 mg, rosuvastatin
5-10 mg and simvastatin 20-40 mg. Statins are indicated for established
atherosclerotic disease, LDL of 190 mg/dL or more, diabetes between ages 40
and 75, and a 10-year risk of 7.5% or more.

## Hypertension
First-line agents are ACE inhibitors (lisinopril, enalapril), ARBs (losartan,
valsartan), calcium channel blockers (amlodipine) and thiazide diuretics
(hydrochlorothiazide, chlorthalidone). The usual target is below 130/80 mmHg.

## Heart Failure
Symptomatic heart failure is treated with an ACE inhibitor, ARB or ARNI, an
evidence-based beta-blocker (carvedilol, metoprolol succinate, bisoprolol),
diuretics for congestion and an aldosterone antagonist.

## Type 2 Diabetes
Metformin with lifestyle change is first line. When HbA1c stays above target,
SGLT2 inhibitors or GLP-1 receptor agonists are preferred, particularly with
cardiovascular or kidney disease. Insulin is started for very high glucose.

## Interactions and Contraindications
Statins should not be combined with gemfibrozil or cyclosporine. ACE
inhibitors and ARBs are contraindicated in pregnancy. Metformin is
contraindicated when eGFR falls below 30 mL/min/1.73m2.
"""

DIAGNOSTIC_CRITERIA = """\
# Cardiac Diagnostic Criteria

## Evaluating Combined Echocardiographic Findings
When an intermediate HFpEF score is reported together with mild impaired
relaxation or an abnormal aortic valve finding, the usual next steps are a
full Doppler echocardiogram, a BNP or NT-proBNP measurement, exercise or
stress testing, and an assessment for coronary artery disease.

Follow-up typically includes a repeat echocardiogram in 6-12 months,
optimisation of blood pressure, glucose, lipids and weight, and a cardiology
consultation.

## Counselling
These are early findings that respond to lifestyle change and regular
monitoring. Patients should report chest pain, breathlessness, fainting or
unusual fatigue.
"""

HFPEF = """\
# Heart Failure with Preserved Ejection Fraction (HFpEF)

HFpEF is diagnosed with symptoms and signs of heart failure, an ejection
fraction of 50% or more, and objective evidence of diastolic dysfunction or
raised filling pressures.

## HFpEF Score
Points are given for age 65 or older, obesity (BMI 30 or more), atrial
fibrillation, raised pulmonary artery systolic pressure, diastolic dysfunction
on echocardiography, and hypertension.
- 0-1 points: low probability of HFpEF
- 2-5 points: intermediate probability; further testing is warranted
- 6-9 points: high probability of HFpEF

A score of 4 sits in the intermediate range and calls for comprehensive
echocardiography, natriuretic peptide testing and possibly exercise testing.
"""

HEART_FAILURE = """\
# Heart Failure Stages

- Stage A: at risk, with no structural disease; manage risk factors.
- Stage B: structural disease without symptoms; ACE inhibitor or ARB, and a
  beta-blocker after myocardial infarction.
- Stage C: structural disease with current or past symptoms; guideline-directed
  medical therapy and diuretics.
- Stage D: refractory symptoms; advanced therapies, mechanical support or
  transplant evaluation.

BNP above 100 pg/mL or NT-proBNP above 125 pg/mL supports the diagnosis in an
outpatient with symptoms.
"""

DIASTOLIC_DYSFUNCTION = """\
# Diastolic Dysfunction

## Grading
- Grade I (mild, impaired relaxation): E/A ratio below 0.8, reduced e'
  velocities, normal left atrial volume. Often the earliest sign of cardiac
  change and frequently without symptoms.
- Grade II (pseudonormal): E/A ratio 0.8-2.0, average E/e' 9-14, enlarged
  left atrium.
- Grade III (restrictive): E/A ratio 2.0 or more, average E/e' 15 or more.

## Mild Impaired Relaxation
Mild impaired relaxation is associated with ageing, hypertension, diabetes and
obesity. It raises the risk of later symptomatic heart failure and is managed
by controlling those risk factors.
"""

AORTIC_STENOSIS = """\
# Aortic Valve Stenosis

## Severity
- Mild: peak jet velocity 2.6-2.9 m/s, mean gradient below 20 mmHg, valve
  area above 1.5 cm2
- Moderate: peak jet velocity 3.0-3.9 m/s, mean gradient 20-39 mmHg, valve
  area 1.0-1.5 cm2
- Severe: peak jet velocity 4.0 m/s or more, mean gradient 40 mmHg or more,
  valve area below 1.0 cm2

## Follow-up
Aortic stenosis progresses over time. An abnormal result needs quantitative
echocardiographic assessment and monitoring for chest pain, breathlessness
and fainting. Severe symptomatic stenosis is treated with valve replacement.
"""

CARDIAC_PERFORMANCE = """\
# Systolic Performance

An abnormal systolic performance index suggests reduced contractility of the
heart muscle. It may reflect coronary artery disease or cardiomyopathy and
usually leads to stress testing or coronary imaging for risk stratification.
Ejection fraction of 50-70% is normal; 41-49% is mildly reduced; 40% or below
is reduced.
"""

MYOCARDIAL_PERFUSION = """\
# Myocardial Perfusion

An abnormal myocardial perfusion index points to reduced blood flow to part of
the heart muscle, at rest or under stress. Ischaemia of this kind is a marker
of coronary artery disease and may be an indication for coronary angiography
when symptoms or other tests agree.
"""

OBESITY = """\
# Body Mass Index and Obesity

## BMI Categories
Body mass index is weight in kilograms divided by height in metres squared.
- Underweight: below 18.5
- Normal weight: 18.5-24.9
- Overweight: 25.0-29.9
- Obesity class I: 30.0-34.9
- Obesity class II: 35.0-39.9
- Obesity class III: 40.0 and above

## Health Implications
Obesity increases the risk of type 2 diabetes, hypertension, dyslipidaemia,
HFpEF, atrial fibrillation and obstructive sleep apnoea. A sustained weight
loss of 5-10% improves blood pressure, glucose and lipid levels.
"""

KNOWLEDGE_SOURCES: tuple[KnowledgeSource, ...] = (
    KnowledgeSource("cardiovascular", "Medical Guidelines - Cardiovascular", CARDIOVASCULAR),
    KnowledgeSource("diabetes", "Medical Guidelines - Diabetes", DIABETES),
    KnowledgeSource("laboratory", "Medical Guidelines - Laboratory", LABORATORY),
    KnowledgeSource("treatment", "Medical Guidelines - Treatment", TREATMENT),
    KnowledgeSource("diagnostic_criteria", "Clinical Guidelines 2024", DIAGNOSTIC_CRITERIA),
    KnowledgeSource("hfpef", "Clinical Guidelines 2024 - HFpEF", HFPEF),
    KnowledgeSource("heart_failure", "Clinical Guidelines 2024 - Heart Failure", HEART_FAILURE),
    KnowledgeSource(
        "diastolic_dysfunction",
        "Clinical Guidelines 2024 - Diastolic Function",
        DIASTOLIC_DYSFUNCTION,
    ),
    KnowledgeSource(
        "aortic_stenosis", "Clinical Guidelines 2024 - Aortic Stenosis", AORTIC_STENOSIS
    ),
    KnowledgeSource(
        "cardiac_performance",
        "Clinical Guidelines 2024 - Systolic Performance",
        CARDIAC_PERFORMANCE,
    ),
    KnowledgeSource(
        "myocardial_perfusion",
        "Clinical Guidelines 2024 - Myocardial Perfusion",
        MYOCARDIAL_PERFUSION,
    ),
    KnowledgeSource("obesity", "Medical Guidelines - Obesity", OBESITY),
)
