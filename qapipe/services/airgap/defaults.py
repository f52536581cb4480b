"""airgap 流水线默认值"""

from __future__ import annotations

CONTAINER_NAME_PREFIX = "rancher-ansible-airgap-setup"
DESTROY_CONTAINER_NAME_PREFIX = "rancher-ansible-airgap-destroy"
IMAGE_NAME_PREFIX = "rancher-ansible-airgap-setup"
DESTROY_IMAGE_NAME_PREFIX = "rancher-ansible-airgap-destroy"
SHARED_VOLUME_PREFIX = "validation-volume"

DEFAULT_RANCHER_TEST_REPO = "https://github.com/rancher/tests"
DEFAULT_QA_INFRA_REPO = "https://github.com/rancher/qa-infra-automation"
DEFAULT_S3_BUCKET = "jenkins-terraform-state-storage"
DEFAULT_S3_BUCKET_REGION = "us-east-2"
DEFAULT_S3_KEY_PREFIX = "jenkins-airgap-rke2"
DEFAULT_RKE2_VERSION = "v1.28.8+rke2r1"
DEFAULT_RANCHER_VERSION = "v2.10-head"
DEFAULT_HOSTNAME_PREFIX = "ansible-airgap"
RANCHER_HOSTNAME_DOMAIN = "qa.rancher.space"

QA_INFRA_WORK_PATH = "/root/go/src/github.com/rancher/qa-infra-automation"
TESTS_WORK_PATH = "/root/go/src/github.com/rancher/tests"
SCRIPTS_DIR = f"{TESTS_WORK_PATH}/validation/pipeline/scripts/airgap"
TOFU_MODULE_DIR = "qa-infra-automation/tofu/aws/modules/airgap"

# 构建镜像用的 Dockerfile（相对工作目录）
DOCKERFILE = "tests/validation/Dockerfile.tofu.e2e"
BUILD_CONTEXT = "."
HELPER_IMAGE = "alpine:latest"

# 超时（分钟）
TERRAFORM_TIMEOUT_MINUTES = 30
ANSIBLE_TIMEOUT_MINUTES = 45
VALIDATION_TIMEOUT_MINUTES = 15

DEFAULT_ARTIFACT_PATTERNS = [
    "artifacts/**",
    "infrastructure-outputs.json",
    "ansible-inventory.yml",
    "kubeconfig.yaml",
    "deployment-summary.json",
]

# 共享卷根目录下需要提取的单个文件
VOLUME_ARTIFACT_FILES = [
    "kubeconfig.yaml",
    "deployment-summary.json",
    "ansible-inventory.yml",
    "infrastructure-outputs.json",
]

FAILURE_ARTIFACT_PATTERNS = {
    "deployment": ["artifacts/**", "terraform.tfstate", "infrastructure-outputs.json"],
    "ansible_prep": ["artifacts/**", "ansible-inventory.yml"],
    "rke2": ["artifacts/**", "kubeconfig.yaml"],
    "rancher": ["artifacts/**", "kubeconfig.yaml"],
}

FAILURE_REASONS = {
    "deployment": "deployment_failure",
    "ansible_prep": "ansible_prepare_failure",
    "rke2": "rke2_failure",
    "rancher": "rancher_failure",
    "timeout": "timeout",
}

# 阶段脚本（容器内路径）
DEPLOY_INFRA_SCRIPT = f"{SCRIPTS_DIR}/airgap_deploy_infrastructure.sh"
PREPARE_ANSIBLE_SCRIPT = f"{SCRIPTS_DIR}/airgap_prepare_ansible.sh"
DEPLOY_RKE2_SCRIPT = f"{SCRIPTS_DIR}/airgap_deploy_rke2.sh"
DEPLOY_RANCHER_SCRIPT = f"{SCRIPTS_DIR}/airgap_deploy_rancher.sh"
CLEANUP_SCRIPT = f"{SCRIPTS_DIR}/airgap_cleanup.sh"

# 容器资源准备阶段绑定的凭据
CREDENTIAL_IDS = [
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SSH_PEM_KEY",
    "AWS_SSH_KEY_NAME",
]

# 不允许以明文参数出现在状态中的键
SENSITIVE_KEYS = [
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SSH_PEM_KEY",
]

# 同步到运行时环境变量的状态键
ENV_SYNC_KEYS = [
    "BUILD_CONTAINER_NAME",
    "IMAGE_NAME",
    "VALIDATION_VOLUME",
    "TF_WORKSPACE",
    "QA_INFRA_WORK_PATH",
    "TERRAFORM_VARS_FILENAME",
    "ANSIBLE_VARS_FILENAME",
    "TERRAFORM_BACKEND_CONFIG_FILENAME",
    "ENV_FILE",
    "RKE2_VERSION",
    "RANCHER_VERSION",
    "HOSTNAME_PREFIX",
    "RANCHER_HOSTNAME",
    "S3_BUCKET_NAME",
    "S3_BUCKET_REGION",
    "S3_KEY_PREFIX",
    "AWS_REGION",
    "DESTROY_ON_FAILURE",
]
