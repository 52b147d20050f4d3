"""
Pipeline stages. Each module exposes `Stage` descriptors; the order lives in
`dvr_pipeline.jobs.executor.STAGES`.
"""
